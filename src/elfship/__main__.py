"""Allow running as python -m elfship"""
from elfship import main

if __name__ == '__main__':
    main()
