"""auth/ -- Identity and authorization core for CollabCal.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or calendars/.
api/ and calendars/ import from auth/, not the other way around.
"""
