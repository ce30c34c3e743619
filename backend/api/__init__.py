"""HTTP API for the G-code driver"""
