"""Authentication and authorization.

Token lifecycle and the per-request gate:
1. Users → username/email + password → signed bearer token (service, jwt)
2. Every request → Authorization header → AuthOutcome on request.state (gate)
3. Route policy and role dependencies decide who gets through (policy, dependencies)
"""
