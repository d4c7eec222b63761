from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep test runs from writing into the user's home log directory.
os.environ.setdefault("EXCEL_TEMPLATE_LOG_DIR", tempfile.mkdtemp(prefix="excel_template_logs_"))
