"""LearnHub - course enrollment and progress tracking API."""
