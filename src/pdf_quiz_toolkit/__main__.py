import sys

from pdf_quiz_toolkit.cli import main

sys.exit(main())
