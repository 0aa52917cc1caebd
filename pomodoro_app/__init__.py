"""Pomodoro Desk application package."""
