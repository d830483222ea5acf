"""Allow ``python -m restic_exporter``."""

import sys

from restic_exporter.runtime import main

sys.exit(main())
