import sys

from pkgaudit.core.main import main

sys.exit(main())
