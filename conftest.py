import sys
import os

# getting the absolute path of the project root
project_root = os.path.abspath(os.path.dirname(__file__))

# adding the project root to the python path so solar_core imports without installing
sys.path.insert(0, project_root)
