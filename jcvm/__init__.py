"""
jcvm — multi-tool development runtime version manager.

Installs, activates and tracks several versions of Java, Node.js, Python
(and any other plugged-in tool) side by side, with one symlink-based
activation model for all of them.
"""

__version__ = "0.1.0"
