"""
Gunicorn configuration for the loyalty portal.

    gunicorn -c gunicorn.conf.py run:app
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Sync workers: every request is a short database transaction
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '60'))
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'loyalty-portal'

preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting loyalty portal...")


def on_exit(server):
    print("[Gunicorn] Loyalty portal shutting down...")
