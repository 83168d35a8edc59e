import sys

from cypher_case.cli import main

sys.exit(main())
