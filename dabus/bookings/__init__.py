"""
Bookings Module

- lifecycle.py: booking creation and status transitions with their seat side effects
- payments.py: payment checkout link selection
- router.py: /bookings endpoints for requesters
"""
