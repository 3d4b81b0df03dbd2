"""
Bookings app - scheduled service instances and their balances.

Bookings are created by the scheduling flow (outside this project); this app
owns the data model, the balance calculator, and the "which bookings can
still take a payment" query used by the payments desk.
"""
