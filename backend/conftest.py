# Ensure 'backend/' is on sys.path so 'import app.*' and 'import tests.*' work
# whether pytest is started from the repo root or from 'backend/'.
from pathlib import Path
import sys

_BACKEND_ROOT = Path(__file__).resolve().parent  # <repo>/backend
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

# Alembic revisions are not test modules
collect_ignore_glob = [
    "alembic/*.py",
    "alembic/versions/*.py",
]
