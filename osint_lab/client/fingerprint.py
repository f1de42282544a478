import hashlib
import locale
import os
import platform
import time
import uuid

from osint_lab.config import VERSION


def device_characteristics():
    """Stable facts about this machine that feed the fingerprint."""
    return {
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "processor": platform.processor(),
        "node": platform.node(),
        "python": platform.python_version(),
        "implementation": platform.python_implementation(),
        "locale": locale.getlocale()[0] or "",
        "timezone": time.tzname[0],
        "cpus": str(os.cpu_count() or 0),
        "mac": format(uuid.getnode(), "012x"),
        "terminal": os.environ.get("TERM", ""),
    }


def fingerprint_hash(characteristics=None):
    characteristics = characteristics if characteristics is not None else device_characteristics()
    canonical = "|".join(f"{k}={characteristics[k]}" for k in sorted(characteristics))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:32]


def user_agent():
    return (f"osint-lab-terminal/{VERSION} ({platform.system()} {platform.release()}; "
            f"{platform.machine()}) Python/{platform.python_version()}")
