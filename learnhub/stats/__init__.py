# Student dashboard and admin statistics
