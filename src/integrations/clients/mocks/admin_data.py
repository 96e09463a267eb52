"""
Admin back-office — MOCK datasets.

⚠️  Fixed demonstration data. Served instead of the backend listings
    whenever the session carries the admin flag, and as the dashboard
    fallback when the metrics endpoint fails. Every call returns fresh
    copies so callers can mutate rows freely.
"""

import copy
from typing import Any, Dict, List

# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

_USERS: List[Dict[str, Any]] = [
    {"id": 1, "firstName": "John", "lastName": "Doe", "email": "john@example.com", "phone": "0712345678", "role": "user", "status": "Active", "createdAt": "2025-01-15"},
    {"id": 2, "firstName": "Jane", "lastName": "Smith", "email": "jane@example.com", "phone": "0723456789", "role": "user", "status": "Active", "createdAt": "2025-02-20"},
    {"id": 3, "firstName": "Bob", "lastName": "Johnson", "email": "bob@example.com", "phone": "0734567890", "role": "admin", "status": "Active", "createdAt": "2025-03-10"},
    {"id": 4, "firstName": "Alice", "lastName": "Brown", "email": "alice@example.com", "phone": "0745678901", "role": "user", "status": "Inactive", "createdAt": "2025-04-05"},
    {"id": 5, "firstName": "Charlie", "lastName": "Wilson", "email": "charlie@example.com", "phone": "0756789012", "role": "user", "status": "Active", "createdAt": "2025-05-12"},
]

_TRANSACTIONS: List[Dict[str, Any]] = [
    {"id": 1, "refNo": "TXN-001", "user": "John Doe", "email": "john@example.com", "product": "Marine Cargo", "amount": 45000, "status": "Completed", "paymentMethod": "M-Pesa", "date": "2025-10-07 14:30"},
    {"id": 2, "refNo": "TXN-002", "user": "Jane Smith", "email": "jane@example.com", "product": "Travel Insurance", "amount": 12000, "status": "Pending", "paymentMethod": "M-Pesa", "date": "2025-10-07 13:15"},
    {"id": 3, "refNo": "TXN-003", "user": "Bob Johnson", "email": "bob@example.com", "product": "Marine Cargo", "amount": 78000, "status": "Completed", "paymentMethod": "M-Pesa", "date": "2025-10-06 16:45"},
    {"id": 4, "refNo": "TXN-004", "user": "Alice Brown", "email": "alice@example.com", "product": "Travel Insurance", "amount": 23000, "status": "Completed", "paymentMethod": "M-Pesa", "date": "2025-10-06 11:20"},
    {"id": 5, "refNo": "TXN-005", "user": "Charlie Wilson", "email": "charlie@example.com", "product": "Marine Cargo", "amount": 56000, "status": "Failed", "paymentMethod": "M-Pesa", "date": "2025-10-05 09:30"},
    {"id": 6, "refNo": "TXN-006", "user": "David Lee", "email": "david@example.com", "product": "Travel Insurance", "amount": 18000, "status": "Completed", "paymentMethod": "M-Pesa", "date": "2025-10-05 15:10"},
    {"id": 7, "refNo": "TXN-007", "user": "Emma Davis", "email": "emma@example.com", "product": "Marine Cargo", "amount": 92000, "status": "Pending", "paymentMethod": "M-Pesa", "date": "2025-10-04 12:00"},
    {"id": 8, "refNo": "TXN-008", "user": "Frank Miller", "email": "frank@example.com", "product": "Travel Insurance", "amount": 15000, "status": "Completed", "paymentMethod": "M-Pesa", "date": "2025-10-04 10:45"},
]

_PREMIUM_BUYERS: List[Dict[str, Any]] = [
    {"id": 1, "name": "John Doe", "email": "john@example.com", "phone": "0712345678", "product": "Marine Cargo", "policyRef": "POL-001", "premium": 45000, "sumInsured": 5000000, "status": "Active", "purchaseDate": "2025-10-07"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com", "phone": "0723456789", "product": "Travel Insurance", "policyRef": "POL-002", "premium": 12000, "sumInsured": 150000, "status": "Active", "purchaseDate": "2025-10-07"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com", "phone": "0734567890", "product": "Marine Cargo", "policyRef": "POL-003", "premium": 78000, "sumInsured": 8000000, "status": "Active", "purchaseDate": "2025-10-06"},
    {"id": 4, "name": "Alice Brown", "email": "alice@example.com", "phone": "0745678901", "product": "Travel Insurance", "policyRef": "POL-004", "premium": 23000, "sumInsured": 200000, "status": "Expired", "purchaseDate": "2025-09-15"},
    {"id": 5, "name": "Charlie Wilson", "email": "charlie@example.com", "phone": "0756789012", "product": "Marine Cargo", "policyRef": "POL-005", "premium": 56000, "sumInsured": 3500000, "status": "Active", "purchaseDate": "2025-10-05"},
]

_QUOTE_USERS: List[Dict[str, Any]] = [
    {"id": 1, "name": "John Doe", "email": "john@example.com", "phone": "0712345678", "quoteType": "Marine Cargo", "quoteRef": "QT-001", "sumInsured": 5000000, "status": "Draft", "createdAt": "2025-10-07 14:30"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com", "phone": "0723456789", "quoteType": "Travel Insurance", "quoteRef": "QT-002", "sumInsured": 150000, "status": "Submitted", "createdAt": "2025-10-07 13:15"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com", "phone": "0734567890", "quoteType": "Marine Cargo", "quoteRef": "QT-003", "sumInsured": 8000000, "status": "Paid", "createdAt": "2025-10-06 16:45"},
    {"id": 4, "name": "Alice Brown", "email": "alice@example.com", "phone": "0745678901", "quoteType": "Travel Insurance", "quoteRef": "QT-004", "sumInsured": 200000, "status": "Draft", "createdAt": "2025-10-06 11:20"},
    {"id": 5, "name": "Charlie Wilson", "email": "charlie@example.com", "phone": "0756789012", "quoteType": "Marine Cargo", "quoteRef": "QT-005", "sumInsured": 3500000, "status": "Submitted", "createdAt": "2025-10-05 09:30"},
]

_HIGH_RISK_SHIPMENTS: List[Dict[str, Any]] = [
    {"id": 1, "refNo": "HRS-001", "user": "John Doe", "origin": "China", "destination": "Mombasa", "cargoType": "Electronics", "value": 5000000, "riskLevel": "High", "status": "Under Review", "date": "2025-10-07"},
    {"id": 2, "refNo": "HRS-002", "user": "Jane Smith", "origin": "India", "destination": "Nairobi", "cargoType": "Chemicals", "value": 3500000, "riskLevel": "Critical", "status": "Pending", "date": "2025-10-06"},
    {"id": 3, "refNo": "HRS-003", "user": "Bob Johnson", "origin": "UAE", "destination": "Mombasa", "cargoType": "Machinery", "value": 8000000, "riskLevel": "High", "status": "Approved", "date": "2025-10-05"},
]

_EXPORT_COVER_REQUESTS: List[Dict[str, Any]] = [
    {"id": 1, "refNo": "EXP-001", "user": "Alice Brown", "origin": "Nairobi", "destination": "UK", "cargoType": "Tea", "value": 2000000, "status": "Pending", "date": "2025-10-07"},
    {"id": 2, "refNo": "EXP-002", "user": "Charlie Wilson", "origin": "Mombasa", "destination": "USA", "cargoType": "Coffee", "value": 4500000, "status": "Approved", "date": "2025-10-06"},
    {"id": 3, "refNo": "EXP-003", "user": "David Lee", "origin": "Nairobi", "destination": "Germany", "cargoType": "Flowers", "value": 1500000, "status": "Under Review", "date": "2025-10-05"},
]

# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

_DASHBOARD_METRICS: Dict[str, Any] = {
    "totalUsers": 1247,
    "totalQuotes": 3856,
    "totalPremiums": 12500000,
    "totalTransactions": 2341,
    "activeUsers": 892,
    "pendingTransactions": 45,
}

_TRAFFIC: List[Dict[str, Any]] = [
    {"date": "2025-10-01", "visitors": 1200, "pageViews": 3400},
    {"date": "2025-10-02", "visitors": 1350, "pageViews": 3800},
    {"date": "2025-10-03", "visitors": 1100, "pageViews": 3200},
    {"date": "2025-10-04", "visitors": 1450, "pageViews": 4100},
    {"date": "2025-10-05", "visitors": 1600, "pageViews": 4500},
]

_SALES: List[Dict[str, Any]] = [
    {"month": "Jan", "sales": 45000, "quotes": 120},
    {"month": "Feb", "sales": 52000, "quotes": 145},
    {"month": "Mar", "sales": 48000, "quotes": 135},
    {"month": "Apr", "sales": 61000, "quotes": 167},
    {"month": "May", "sales": 58000, "quotes": 156},
]

_PRODUCTS: List[Dict[str, Any]] = [
    {"name": "Marine Cargo Insurance", "sales": 156000, "percentage": 45},
    {"name": "Travel Insurance", "sales": 89000, "percentage": 25},
    {"name": "Motor Insurance", "sales": 67000, "percentage": 19},
    {"name": "Property Insurance", "sales": 34000, "percentage": 11},
]

_RECENT_TRANSACTIONS: List[Dict[str, Any]] = [
    {"id": 1, "user": "John Doe", "amount": 45000, "product": "Marine Cargo", "status": "Completed", "date": "2025-10-07"},
    {"id": 2, "user": "Jane Smith", "amount": 12000, "product": "Travel Insurance", "status": "Pending", "date": "2025-10-07"},
    {"id": 3, "user": "Bob Johnson", "amount": 78000, "product": "Marine Cargo", "status": "Completed", "date": "2025-10-06"},
    {"id": 4, "user": "Alice Brown", "amount": 23000, "product": "Travel Insurance", "status": "Completed", "date": "2025-10-06"},
    {"id": 5, "user": "Charlie Wilson", "amount": 56000, "product": "Marine Cargo", "status": "Failed", "date": "2025-10-05"},
]

MOCK_LISTINGS: Dict[str, List[Dict[str, Any]]] = {
    "/admin/users": _USERS,
    "/admin/quote-users": _QUOTE_USERS,
    "/admin/premium-buyers": _PREMIUM_BUYERS,
    "/admin/transactions": _TRANSACTIONS,
    "/admin/high-risk-shipments": _HIGH_RISK_SHIPMENTS,
    "/admin/export-cover-requests": _EXPORT_COVER_REQUESTS,
}


def mock_listing(path: str) -> List[Dict[str, Any]]:
    return copy.deepcopy(MOCK_LISTINGS[path])


def mock_dashboard() -> Dict[str, Any]:
    return {
        "metrics": dict(_DASHBOARD_METRICS),
        "traffic": copy.deepcopy(_TRAFFIC),
        "sales": copy.deepcopy(_SALES),
        "products": copy.deepcopy(_PRODUCTS),
        "recent_transactions": copy.deepcopy(_RECENT_TRANSACTIONS),
    }
