"""
Function gateway for the reading-tracker app.

Each action is a small authenticated handler sitting between the client and
the BaaS or third-party platforms (Pinterest, FCM). The shared request
lifecycle lives in `gateway.pipeline`; the action bodies live in
`gateway.actions`.
"""
