"""
session_metadata.py
Interpreter, platform and library versions for the report footer.
"""

import platform
import sys
from datetime import datetime, timezone
from importlib import metadata

import pandas as pd

REPORTED_PACKAGES = [
    "pandas", "numpy", "matplotlib", "seaborn", "statsmodels", "requests", "jinja2",
]


def package_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "not installed"


def collect_session_info(packages: list[str] = REPORTED_PACKAGES) -> pd.DataFrame:
    rows = [
        ("python", sys.version.split()[0]),
        ("implementation", platform.python_implementation()),
        ("platform", platform.platform()),
        ("generated (UTC)", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")),
    ]
    rows += [(name, package_version(name)) for name in packages]
    return pd.DataFrame(rows, columns=["item", "value"])
