import sys

from presence_stream.main import main


sys.exit(main())
