"""
Scheduled background jobs.

- **backup_scheduler.py**: Daily archive of the stored collections, uploaded
  to the configured backup channel.
"""
