# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""错误码 / 响应包装 / 日志 / 请求 id

约定：
- 出线格式只有一种：{"err_no", "err_msg", "data"?}，由 response.wrap 统一生成
- 业务和仓储只抛 AppError；驱动异常在 infra 层翻译成错误码后才会往上走
- 对外文案固定，原始错误信息只进服务端日志（带请求 id）
"""

from __future__ import annotations
