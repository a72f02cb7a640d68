"""
ttusync -- storage backends for a reader's library.

Books, progress, statistics and reading goals replicate to whichever
backend the reader picks: a local folder, WebDAV, or a cloud drive.
Credentials for those backends stay encrypted at rest.
"""

import os

__version__ = "0.1.0"

TTUSYNC_HOME = os.environ.get("TTUSYNC_HOME", "~/.ttusync")
