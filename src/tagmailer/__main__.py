# =============================================================================
# tagmailer Entry Point for `python -m tagmailer`
# =============================================================================
# This module allows tagmailer to be run as a Python module:
#
#   python -m tagmailer --to someone@example.com --subject Hi --body Hello
#
# This is equivalent to running the 'tagmailer' command after installation.
# =============================================================================

import sys

from tagmailer.app import main

if __name__ == "__main__":
    sys.exit(main())
