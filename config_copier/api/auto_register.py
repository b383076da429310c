"""
API 自动注册机制
通过装饰器和反射机制自动生成 FastAPI 路由，减少重复代码
"""

from typing import Any, Callable, List, Type

from fastapi import FastAPI, Response

from .api_models import ApiResponse


class APIEndpoint:
    """API 端点信息"""

    def __init__(
        self,
        name: str,
        method: Callable,
        request_model: Type,
        response_model: Type,
        description: str = "",
    ):
        self.name = name
        self.method = method
        self.request_model = request_model
        self.response_model = response_model
        self.description = description


def expose_api(
    request_model: Type, response_model: Type, description: str = ""
) -> Callable:
    """
    API 暴露装饰器，标记需要自动注册的 API 方法

    Args:
        request_model: 请求模型类型
        response_model: 响应数据模型类型
        description: API 描述

    Returns:
        装饰器函数
    """

    def decorator(method: Callable) -> Callable:
        # 为方法添加 API 元数据
        method._is_api_exposed = True
        method._request_model = request_model
        method._response_model = response_model
        method._api_description = description
        return method

    return decorator


def http_status_for(result: ApiResponse) -> int:
    """ApiResponse.code 小于 400 时都视为已处理的请求，返回 200"""
    return result.code if result.code >= 400 else 200


class APIRegistry:
    """API 注册器，用于自动发现和注册 API 端点"""

    @staticmethod
    def discover_endpoints(api_core_instance: Any) -> List[APIEndpoint]:
        """
        发现 API 核心实例中的所有暴露端点

        Args:
            api_core_instance: API 核心实例

        Returns:
            发现的端点列表
        """
        endpoints = []

        # 遍历实例的所有属性
        for name in dir(api_core_instance):
            # 跳过私有属性和特殊方法
            if name.startswith("_"):
                continue

            attr = getattr(api_core_instance, name)

            # 检查是否为可调用方法且被标记为暴露
            if (
                callable(attr)
                and hasattr(attr, "_is_api_exposed")
                and attr._is_api_exposed
            ):
                endpoint = APIEndpoint(
                    name=name,
                    method=attr,
                    request_model=attr._request_model,
                    response_model=attr._response_model,
                    description=attr._api_description,
                )
                endpoints.append(endpoint)

        return endpoints

    @staticmethod
    def register_fastapi_routes(
        app: FastAPI, api_core_instance: Any, prefix: str = "/api"
    ) -> List[str]:
        """
        自动注册 FastAPI 路由

        每个端点注册为 POST {prefix}/{name}，响应的 HTTP 状态码取自 ApiResponse.code。

        Args:
            app: FastAPI 应用实例
            api_core_instance: API 核心实例
            prefix: 路由前缀

        Returns:
            已注册的路由路径列表
        """
        endpoints = APIRegistry.discover_endpoints(api_core_instance)
        paths = []

        for endpoint in endpoints:
            # 使用工厂函数避免闭包变量捕获问题
            def create_route_factory(ep):
                async def route_func(request: ep.request_model, response: Response) -> ApiResponse[ep.response_model]:  # type: ignore
                    """动态生成的路由函数"""
                    result = await ep.method(request)
                    response.status_code = http_status_for(result)
                    return result

                return route_func

            # 创建路由函数
            route_func = create_route_factory(endpoint)

            # 设置路由函数的签名和文档
            route_func.__name__ = endpoint.name
            route_func.__doc__ = endpoint.description or f"{endpoint.name} API"

            # 注册路由，省略值为 None 的字段
            path = f"{prefix}/{endpoint.name}"
            app.post(path, response_model_exclude_none=True)(route_func)
            paths.append(path)

        return paths
