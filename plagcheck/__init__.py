"""
Client library for the IUH_PLAGCHECK thesis plagiarism backend.
"""
