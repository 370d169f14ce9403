"""Entry point: python -m openapi_authz"""

from openapi_authz.cli import main

if __name__ == "__main__":
    main()
