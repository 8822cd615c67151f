# CUI // SP-CTI
import sys

from appmig.traffic.migrator import main

sys.exit(main())
