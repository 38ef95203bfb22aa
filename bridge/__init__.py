"""
History bridge package.

Exposes a small FastAPI service that reads a subtree from a Firebase
Realtime Database and returns it either as a JSON listing or as an HTML
card list for embedding in a mobile WebView.
"""
