"""
Service layer: entitlement policy, project lifecycle, provider dispatch,
background operations, billing and design suggestions.
"""
