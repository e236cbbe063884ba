import sys

from garden_irrigation.main import main

sys.exit(main())
