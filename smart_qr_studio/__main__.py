"""Allow running as: python -m smart_qr_studio"""

import sys

from smart_qr_studio.cli import main

sys.exit(main())
