"""
Trips Module

- inventory.py: seat counters, mutated only through conditional updates
- service.py: scheduling, search, update and deletion of trips
- router.py: /trips endpoints
"""
