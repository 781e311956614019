import sys

from noema.main import main


sys.exit(main())
