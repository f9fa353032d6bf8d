"""Scheduler module for the free-games watcher.

Schedule overview:
  - once, shortly after start  - Check and notify free games
  - CHECK_SCHEDULE (crontab)   - Check and notify free games (default 18:00 daily)
"""
