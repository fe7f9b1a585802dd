"""
Put the repository root on sys.path so the seeding CLIs run from scripts/.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[4]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
