import os

# Bind & workers: handlers run on independent threads, token state lives in the stores
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = 30
graceful_timeout = 15
keepalive = 5

wsgi_app = "token_authority:create_app()"

# Logs to stdout/stderr (collected by the container runtime)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers from the edge
forwarded_allow_ips = "*"
proxy_protocol = False
