"""
Gunicorn configuration for hosted deployment.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Each webhook runs a chain of blocking API calls; sync workers are enough
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60  # Acuity + PassKit round trips
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
capture_output = True

proc_name = 'acuity-passkit-bridge'

preload_app = True

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting bridge server...")


def on_exit(server):
    print("[Gunicorn] Bridge server shutting down...")
