#!/usr/bin/env python3
from livesite.cli import main

if __name__ == "__main__":
    main()
