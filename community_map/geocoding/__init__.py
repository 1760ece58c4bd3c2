"""
Geocoding Module
--------------
Handles forward geocoding of free-text member locations to coordinates.
Uses OpenStreetMap's Nominatim API with a denylist, rate limiting and a persistent
cache, falling back to a batched OpenAI request for what Nominatim cannot resolve.
"""
