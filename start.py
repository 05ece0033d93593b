#!/usr/bin/env python3
"""
draftdesk process launcher.

SERVICE_TYPE picks the process:
  - web (default): gunicorn serving draftdesk.api.main:app
  - worker: the standalone AI queue worker

Run the worker separately when the web service sets AI_WORKER_ENABLED=false.
"""

import os
import sys


def web_command(port: str) -> list:
    # One gunicorn worker so the in-process queue worker runs only once
    return [
        "gunicorn", "draftdesk.api.main:app",
        "--workers", "1",
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--bind", f"0.0.0.0:{port}",
        "--timeout", "300",
        "--graceful-timeout", "120",
    ]


def worker_command(port: str) -> list:
    return [sys.executable, "-m", "draftdesk.jobs.run_worker"]


COMMANDS = {
    "web": web_command,
    "worker": worker_command,
}


def main():
    service_type = os.environ.get("SERVICE_TYPE", "web")
    port = os.environ.get("PORT", "8000")

    build = COMMANDS.get(service_type)
    if build is None:
        print(f"Unknown SERVICE_TYPE {service_type!r}; expected one of: {', '.join(COMMANDS)}")
        sys.exit(1)

    cmd = build(port)
    print(f"draftdesk {service_type}: {' '.join(cmd)}")
    os.execvp(cmd[0], cmd)


if __name__ == "__main__":
    main()
