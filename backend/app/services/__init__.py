"""
Magic Movers Backend — Services Layer
=======================================

What:  Business logic layer sitting between routes (HTTP) and repositories
       (persistence).
How:   Services receive repository implementations in their constructor,
       apply the domain rules, and return response schemas.

Service Inventory:
    - MoverService: mover registry and the quest-state transitions
      (load, start mission, end mission, top movers)
    - ItemService: item registry
"""
