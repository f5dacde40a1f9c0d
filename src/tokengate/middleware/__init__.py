"""HTTP middleware stack.

Request flow (outermost first):
CORS → RequestId → SecurityHeaders → Authentication → RoutePolicy → handler
"""
