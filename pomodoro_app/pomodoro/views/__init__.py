"""wxPython views for Pomodoro Desk."""
