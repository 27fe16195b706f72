"""Gunicorn configuration for K8s deployment.

Launch with::

    gunicorn chatcore.main:app -c gunicorn.conf.py

- Single async worker per pod; scale horizontally via K8s HPA
- Worker recycling to prevent memory leaks over long runs
- Keep-alive matched to K8s ingress (typically 60s)
- Worker timeout above the longest SSE answer a provider may stream
"""

import os

# --- Server ---
bind = os.environ.get("BIND", "0.0.0.0:8000")

# --- Workers ---
workers = int(os.environ.get("WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"

# --- Timeouts ---
timeout = 300  # Kill worker if stuck > 5 min
graceful_timeout = 30  # Let in-flight streams and background records finish on SIGTERM
keepalive = 65  # Match K8s ingress (usually 60s)

# --- Worker recycling ---
max_requests = 5000
max_requests_jitter = 500

# --- Logging ---
accesslog = "-"  # stdout
loglevel = os.environ.get("LOG_LEVEL", "info")

# --- Application config ---
raw_env = [f"CHATCORE_CONFIG={os.environ.get('CHATCORE_CONFIG', 'config.json')}"]
