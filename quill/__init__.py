"""
QUILL - Quarantined Untrusted Input LaTeX Layout

Renders untrusted LaTeX snippets posted in chat to PNG images without ever
trusting the typesetting engine with host resources.

Architecture:
- Sandbox Context: Resource-capped, network-isolated container execution
- Rendering Context: Render protocol, LaTeX engine, renderers and job supervision
- Interactions Context: Response correlation, action ownership and follow-up actions
"""

__version__ = "0.1.0"
