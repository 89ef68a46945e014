"""MUNIR transactional email functions."""
