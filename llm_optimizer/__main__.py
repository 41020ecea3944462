import sys

from llm_optimizer.main import main

sys.exit(main())
