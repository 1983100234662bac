"""
测试公共配置

日志写入临时目录，避免在仓库根目录生成 logs/。
"""

import os
import tempfile

os.environ.setdefault("VAREXPR_LOG_DIR", tempfile.mkdtemp(prefix="varexpr_logs_"))
