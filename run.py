"""Launch SparkleTree from a source checkout without installing it."""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sparkletree.main import cli  # noqa: E402

if __name__ == "__main__":
    cli()
