"""
DevConnector Backend — Services Layer
=======================================

Service Inventory:
    - IdentityService: user id → display name and avatar
    - PostService: posts, likes, comments and their ownership rules
"""
