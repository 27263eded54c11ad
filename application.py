"""
WSGI entry point (Elastic Beanstalk looks for `application`)
"""
import sys
import os

# Make the backend package importable when started from this directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from backend.app import app as application

if __name__ == "__main__":
    application.run(debug=True)
