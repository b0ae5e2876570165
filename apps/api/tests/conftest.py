"""
Test configuration shared by every test module.
"""

import os

# Must be set before app settings are imported
os.environ.setdefault("PYTHON_ENV", "test")
os.environ.setdefault("RESEND_API_KEY", "")
