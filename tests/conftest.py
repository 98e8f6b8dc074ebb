import os
import sys

# Ensure the package can be imported when running tests directly on Windows
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)
