"""Allow ``python -m klipper_docs_mcp``."""

import sys

from klipper_docs_mcp.app import main


sys.exit(main())
