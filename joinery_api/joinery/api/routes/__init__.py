"""
API route modules for the stock and procurement endpoints.

This package contains subrouters for:
- Items and suppliers
- Stock transactions and stock tallies
- Reservations
- Materials to order
- Purchase orders and goods receipt
- Audit log
- The notification WebSocket (mounted at the application root)

Routers are included from joinery.api.main (under the /api/v1 prefix).
"""
