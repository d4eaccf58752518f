"""Asklepios - auto-healing for Kubernetes control-plane nodes.

Watches the Ready condition of every control-plane node. A node that stays
not-ready longer than the kickout delay is cordoned and tainted
node.kubernetes.io/out-of-service; once it has been ready longer than the
kickin delay the taint is removed and the node is uncordoned.
"""

__version__ = "0.1.0"
