"""
Gunicorn settings for the EduBridge API.

Run with:
    gunicorn edubridge.main:app -c deploy/gunicorn.conf.py
"""
import os
import multiprocessing

bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 1024

# SQLite allows one writer at a time; keep a single worker unless
# DATABASE_URL points at a server database
_database_url = os.environ.get("DATABASE_URL", "sqlite")
if "sqlite" in _database_url:
    workers = 1
else:
    workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sus'

proc_name = "edubridge"
daemon = False

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"EduBridge API ready on {bind} with {workers} worker(s)")
