import os
import tempfile

# cli.main() configures logging; keep the log file out of the repo.
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "flbot-test-log.txt"))
