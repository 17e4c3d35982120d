"""Reference event data: JSON codec, on-disk datasets, and the published static API.

Nothing here is needed to compute events; these modules only move
{ "Date", "Phase" } records in and out.
"""
