import sys

from uvn.main import main

sys.exit(main())
