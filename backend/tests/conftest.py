import sys
from pathlib import Path

# Make `places` and `settings` importable from backend/ without an install
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
