"""
Client-side helpers: session parameter resolution, host-frame error
reporting, and bootstrapping an authenticated BaaS client.
"""
