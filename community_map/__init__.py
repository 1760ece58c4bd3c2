"""
Community Map
-------------
Resolves free-text profile locations of workspace members to coordinates and
serves the resulting dataset to the front-end map.
"""
