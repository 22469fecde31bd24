"""Classroom booking arbiter for the campus portal.

Owns the overlap predicate, the confirmed-booking conflict query and the
pending/confirmed/rejected/cancelled state machine.  HTTP handlers, storage
and the live event feed are thin collaborators around it.
"""
