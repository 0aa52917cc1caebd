"""Timer engine, API clients and controllers for Pomodoro Desk."""

__version__ = "0.3.0"
