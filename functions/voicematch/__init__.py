"""
Client layer for the voice matching app.

This package tracks the signed-in session, renders the page shell and
forwards profile, match, conversation and voice profile operations to the
hosted Supabase backend (auth, tables, storage and realtime feeds).
"""
