"""
Packaged data files: model context limits.
"""
