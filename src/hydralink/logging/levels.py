"""
HUMAN logging level — readable progress for people at a terminal.

Custom level between INFO (20) and WARNING (30). It does not indicate
severity: it marks the few events worth showing without -v (scan finished,
document reindexed, watcher started), rendered by HumanLogHandler.

Hierarchy:
    debug  (10) -> per-document indexing, queue internals
    info   (20) -> scans, refreshes, watcher lifecycle (technical form)
    human  (25) -> what the user should see
    warn   (30) -> unreadable documents, missing roots
    error  (40) -> errors
"""

import logging

import structlog

HUMAN = 25
logging.addLevelName(HUMAN, "HUMAN")


def _human_method(self, message, *args, **kwargs):
    if self.isEnabledFor(HUMAN):
        self._log(HUMAN, message, args, **kwargs)


logging.Logger.human = _human_method

# structlog maps numeric levels to names; 25 is unknown to it otherwise
try:
    structlog.stdlib.LEVEL_TO_NAME[HUMAN] = "human"
except AttributeError:
    pass
