"""
Pulumi program entry point for the query service stack.
"""

from querystack.program import main

main()
