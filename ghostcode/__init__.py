"""
GhostCode - an interactive AI coding-assistant shell.

Sends each turn to a chat model, applies the file modifications the model
proposes through local tools and feeds the results back for further rounds.
"""

__version__ = "0.3.0"
__author__ = "GhostCode contributors"
__license__ = "MIT"
