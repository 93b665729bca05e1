"""
Entry point for python -m cloudprnt_broker and the cloudprnt-broker script.
"""

from .app import main

if __name__ == '__main__':
    main()
