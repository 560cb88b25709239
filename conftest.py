import sys
from pathlib import Path

# Ensure repo root on sys.path so "src." imports resolve from anywhere in the tests tree.
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
