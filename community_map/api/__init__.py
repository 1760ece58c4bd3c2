"""
API Module
---------
Provides the JSON endpoints consumed by the front-end map using FastAPI.
Features include:
- Serving the geocoded member dataset
- A lightweight preview mode returning only the first records
"""
