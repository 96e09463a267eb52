"""
Contracts (data models).

This folder defines the shapes exchanged with the broker platform:
- Quote, premium breakdown and shipment application models
- STK-push request/response and payment status models
- Admin listing pages and resources

Both mock and real HTTP clients return these contracts, so services and
routers never depend on raw upstream payloads.
"""
