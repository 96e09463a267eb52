"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used when:
- the broker API is not reachable from a developer machine
- we want to exercise the payment flow end-to-end without a real handset

Important:
- Mock clients must follow the SAME interface as real HTTP clients.
- Mock clients return data shaped according to src/integrations/contracts/*

Switching to real:
Set INTEGRATIONS_MODE=real (and BROKER_API_URL) to use clients/real_http/* instead.
"""
