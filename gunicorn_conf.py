import multiprocessing
import os

# Gunicorn configuration for the Todo API
# Run with: gunicorn -c gunicorn_conf.py todo_api.main:app

bind = os.getenv("BIND", "0.0.0.0:8000")

# (2 x num_cores) + 1 unless WEB_CONCURRENCY says otherwise
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"

timeout = 120
keepalive = 5

# Access and error logs go to stdout/stderr; app logs use the root logger
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

name = "todo_api"
reload = False
