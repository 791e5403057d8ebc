#!/usr/bin/env python
"""AI PatternScanner 啟動程式

執行 python run.py <scan|backtest|demo|report> 即可使用命令列工具。
"""

import sys

from pattern_scanner.cli import main


if __name__ == '__main__':
    sys.exit(main())
