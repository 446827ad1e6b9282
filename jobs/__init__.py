"""Background jobs: dramatiq broker, tasks and the cron scheduler."""
