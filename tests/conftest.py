"""Test configuration.

GitHub Actions appears to run Python with a safe import path where the working
directory isn't automatically importable. Ensure the repo root is on sys.path so
`import notegen` works without installing the package. The user config
directory is pointed at a throwaway location so tests never touch real keys.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["XDG_CONFIG_HOME"] = tempfile.mkdtemp(prefix="notegen-tests-")
os.environ["APPDATA"] = os.environ["XDG_CONFIG_HOME"]
