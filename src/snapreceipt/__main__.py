import sys

from snapreceipt.main import main

sys.exit(main())
