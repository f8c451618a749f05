import sys

from mcp_bridge.cli import main

sys.exit(main())
