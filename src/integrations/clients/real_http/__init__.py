"""
Real HTTP integration clients.

These clients talk to the broker REST API via httpx:
- quote and shipping application endpoints
- M-Pesa STK push and payment validation
- admin listings and authentication

Important:
- Must implement the same interfaces as the mock clients
- Must return data shaped according to src/integrations/contracts/*

Switching:
The selection of mock vs real clients happens in src/api/dependencies.py only.
"""
