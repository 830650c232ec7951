import os
import tempfile
from pathlib import Path

os.environ.setdefault("STATE_DATABASE_PATH", str(Path(tempfile.gettempdir()) / "skydash-test-state.db"))
