"""
Gunicorn configuration for the Pulse analytics API.

Env vars that override defaults:
  PORT       TCP port to bind
  WORKERS    number of worker processes (default: 2)
  LOG_LEVEL  gunicorn log level (default: info)

Each worker holds its own AnalyticsCache, so cached results are per process.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Analytics queries are DB-bound; 2 workers suit a small container.
workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Long backfills run inline on the admin endpoint.
timeout = 300

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
