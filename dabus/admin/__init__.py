"""
Admin Module

- router.py: dashboard stats, booking and trip listings, status changes,
  Excel exports and user promotion
- export_service.py: spreadsheet rendering with pandas and openpyxl
"""
