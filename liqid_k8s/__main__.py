import sys

from liqid_k8s.cli import main

sys.exit(main())
