"""Placement attendance engine.

Feature modules (attendance, reports) sit on top of shared ``core`` and
``common`` code, with a thin Flask controller layer and service/repository
layers underneath.
"""
