"""
运行 variables_demo.yaml 变量文件并打印求值结果
"""

import pathlib

from core.parser import VariableFileParser
from services.effective import ExpressionContext
from services.expression_service import ExpressionService
from utils.logger import close_logger


def run_expression_demo():
    """在 workspace=1/client=101/contractor=1001 上下文中求值两个报表链接。"""
    config_path = pathlib.Path(__file__).parent.parent / "config" / "variables_demo.yaml"

    config = VariableFileParser().parse_file(config_path)
    print(f"变量定义数量: {len(config.variables)}，超时: {config.timeout}s")

    service = ExpressionService.from_yaml(config_path)
    context = ExpressionContext(workspace_id=1, client_id=101, contractor_id=1001)
    args = {"timeStart": "2023-01-01", "timeEnd": "2023-01-31"}

    for name in ("REPORT_URL", "DETAILED_URL"):
        result = service.evaluate_sync(context, f"vars.{name}", args)
        print(f"{name} = {result}")


if __name__ == "__main__":
    try:
        run_expression_demo()
    finally:
        close_logger()
