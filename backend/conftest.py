"""
Pytest configuration file for backend testing.
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Register the POS import tables with SQLAlchemy metadata
from modules.pos_import.models import pos_import_models  # noqa: E402,F401
