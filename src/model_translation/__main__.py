import sys

from model_translation.cli import main

sys.exit(main())
