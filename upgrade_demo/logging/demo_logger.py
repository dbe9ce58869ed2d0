import json
import logging
import time
import os
import socket

# Configure logger
logger = logging.getLogger("upgrade-demo-events")
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter('%(message)s'))
logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False

HOST_ID = os.getenv("HOSTNAME", socket.gethostname())

def log_event(event_type: str, details: dict = None):
    """
    Emit a structured JSON log event.
    """
    payload = {
        "timestamp": time.time(),
        "timestamp_iso": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "event_type": event_type,
        "host": HOST_ID,
        "details": details or {}
    }
    logger.info(json.dumps(payload))

def log_app_started(variant: str, command: list, pid: int):
    log_event("APP_STARTED", {"variant": variant, "command": command, "pid": pid})

def log_app_ready(url: str, polls: int, waited_seconds: float):
    log_event("APP_READY", {"url": url, "polls": polls, "waited_seconds": round(waited_seconds, 3)})

def log_app_stopped(pid: int, returncode):
    log_event("APP_STOPPED", {"pid": pid, "returncode": returncode})

def log_sample_recorded(descriptor, sample):
    log_event("SAMPLE_RECORDED", {"descriptor": descriptor.as_dict(), "sample": sample.as_dict()})

def log_sample_overwritten(descriptor, previous, sample):
    """
    Audit trail for an upsert that replaced an earlier run with the same descriptor.
    """
    log_event("SAMPLE_OVERWRITTEN", {
        "descriptor": descriptor.as_dict(),
        "previous": previous.as_dict(),
        "current": sample.as_dict(),
    })
