import logging
import sys

# 必须在所有其他导入之前配置日志，否则其他模块导入时会初始化默认日志处理器
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True,  # 强制重新配置，覆盖已有的日志配置
)

import asyncio

from dotenv import load_dotenv

from config_copier.api.fastapi_adapter import run_fastapi_server
from config_copier.config import config_service

load_dotenv()

# 获取主模块日志记录器
logger = logging.getLogger(__name__)


def main():
    """主函数"""
    app_config = config_service.load()
    logging.getLogger().setLevel(app_config.log_level)

    logger.info(f"Server address: http://{app_config.host}:{app_config.port}")
    logger.info(f"User home: {app_config.resolved_user_home}")
    logger.info("Hint: Press Ctrl+C to exit the server")

    try:
        asyncio.run(run_fastapi_server(app_config.host, app_config.port))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except asyncio.CancelledError:
        # Uvicorn 正常关闭时会取消任务
        logger.info("FastAPI server shutdown completed")


if __name__ == "__main__":
    main()
