"""Report builders for Pomodoro Desk."""
