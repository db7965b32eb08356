# Enrollment tracking
