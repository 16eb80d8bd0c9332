"""
Gunicorn configuration for the habitcore API.

Run with:  gunicorn habitcore.main:app -c gunicorn.conf.py
Env vars that override defaults:
  PORT       — TCP port to bind
  WORKERS    — number of worker processes (default: 2)
  LOG_LEVEL  — shared with the application logger (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Analytics requests are CPU-bound over one owner's history; scale by cores.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Yearly heatmaps over long histories are the slowest requests.
timeout = 60

# stdout only; the platform collects it.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
