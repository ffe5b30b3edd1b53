"""
Shelter animals: records in Postgres, one photo blob per animal on disk.
"""
