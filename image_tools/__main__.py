import sys

from image_tools.main import main

sys.exit(main())
