"""
j2g 入口
"""

from j2g.cli import main

if __name__ == "__main__":
    main()
