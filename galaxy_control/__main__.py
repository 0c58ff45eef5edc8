"""python -m galaxy_control"""

import sys

from galaxy_control.app import main

sys.exit(main())
