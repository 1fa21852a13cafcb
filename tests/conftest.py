import os
import tempfile

# Tests laufen gegen eine In-Memory-Datenbank und einen temporären Datenordner,
# damit die echte database.db nicht angefasst wird. Muss vor dem Import von app.py passieren.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="courier-tracker-"))
