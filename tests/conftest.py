import os
import sys
from pathlib import Path

# App/ holds the top-level modules (models, config_manager, tone_engine, ...)
APP_DIR = Path(__file__).resolve().parent.parent / "App"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
