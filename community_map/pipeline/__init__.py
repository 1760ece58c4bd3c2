"""
Pipeline Module
-------------
Batch orchestration of the geocoding run: partitions the member list, resolves
each batch through cache, Nominatim and the AI fallback, persists cache and
output after every batch, and reports the final tally.
"""
