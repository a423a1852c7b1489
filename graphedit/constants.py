"""Application-wide constants.

Node kinds offered by the editor and history-engine limits.
"""

from datetime import timedelta

# Node kinds offered by the node selector
NODE_KINDS = ["redis", "mongo", "node", "docker"]

# History engine
PRUNE_THRESHOLD = 1000  # total versions before pruning kicks in
MAX_NODE_AGE = timedelta(days=7)
INITIAL_DESCRIPTION = "Initial state"
MERGE_DESCRIPTION = "Merged: {source} + {target}"
