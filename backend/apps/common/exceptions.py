"""
业务异常体系（BizError）

约定与作用：
- 所有“预期内的业务错误”都继承 BizError，避免直接抛框架异常
- 统一错误码/HTTP 状态/提示语，便于判题机回调方与前端对齐
- 系统级错误（代码 bug、数据库故障等）由全局异常处理器按 500 处理

错误码规范：
- 0                : 成功（只出现在正常响应里）
- 40000~40099      : 通用请求 / 参数错误（Validation）
- 40100~40199      : 认证错误（未登录、回调密钥无效等）
- 40300~40399      : 权限错误
- 40400~40499      : 资源不存在（比赛、题目、提交等）
- 42900~42999      : 频率限制
- 46000~46099      : 比赛状态相关错误（未开始、已结束、不可见等）
- 48000~48099      : 题目相关错误
- 48100~48199      : 提交 / 判题派发相关错误
- 48200~48299      : 判题回调相关错误
- 50300~50399      : 基础设施/第三方依赖不可用（缓存、数据库、判题机等）

使用方式：
- 业务层抛 BizError 或子类；全局异常处理器读取 exc.code/message/http_status/extra 构造统一响应
"""


class BizError(Exception):
    """
    所有业务异常的基类

    设计要点：
    - 不耦合 DRF / Response，只是纯数据和语义；
    - 子类只需覆盖 default_code / default_message / http_status；
    - 也可以在 __init__ 时传入自定义 message / code / extra 做覆盖
    """

    #: 子类可覆盖的默认错误码
    default_code: int = 40000

    #: 子类可覆盖的默认提示信息
    default_message: str = "业务错误"

    #: 子类可覆盖的建议 HTTP 状态码（交给异常处理器用）
    http_status: int = 400

    def __init__(self, message: str | None = None, code: int | None = None, *, extra: dict | None = None):
        self.code = code if code is not None else self.default_code
        self.message = message if message is not None else self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self) -> str:  # 方便日志输出
        return f"[{self.code}] {self.message}"


# ======================
# 通用类错误
# ======================

class ValidationError(BizError):
    """
    参数校验 / 请求数据不合法：
    - 缺少必要字段
    - 字段格式错误
    """
    default_code = 40002
    default_message = "请求参数不合法"
    http_status = 400


class NotFoundError(BizError):
    """
    通用资源不存在：
    - 比赛/题目/提交不存在
    - 比赛已隐藏或已软删除（对外同样表现为不存在）
    """
    default_code = 40400
    default_message = "资源不存在"
    http_status = 404


class RateLimitError(BizError):
    """触发频率限制：提交太频繁"""
    default_code = 42900
    default_message = "请求过于频繁，请稍后再试"
    http_status = 429


# ======================
# 认证 / 授权相关
# ======================

class AuthError(BizError):
    """认证相关错误，统一归类为 401xx"""
    default_code = 40100
    default_message = "认证失败"
    http_status = 401


class CallbackAuthError(AuthError):
    """
    判题回调共享密钥缺失或不匹配：
    - 在任何业务处理之前拒绝，不产生任何状态变更
    """
    default_code = 40107
    default_message = "回调认证失败"


class PermissionDeniedError(BizError):
    """
    权限不足：
    - 查看他人提交等
    """
    default_code = 40300
    default_message = "无权限进行该操作"
    http_status = 403


# ======================
# 比赛领域错误
# ======================

class ContestError(BizError):
    """比赛相关通用错误基类"""
    default_code = 46000
    default_message = "比赛相关错误"
    http_status = 400


class ContestNotStartedError(ContestError):
    """比赛未开始"""
    default_code = 46001
    default_message = "比赛尚未开始，当前不可提交"


class ContestEndedError(ContestError):
    """比赛已结束"""
    default_code = 46002
    default_message = "比赛已结束，提交不再计分"


class ContestNotVisibleError(ContestError):
    """比赛不可见或已删除"""
    default_code = 46004
    default_message = "比赛未发布或不可见"


class LeaderboardDisabledError(ContestError):
    """比赛未开放排行榜"""
    default_code = 46008
    default_message = "该比赛未开放排行榜"
    http_status = 404


# ======================
# 题目领域错误
# ======================

class ProblemError(BizError):
    """题目相关通用错误基类"""
    default_code = 48000
    default_message = "题目相关错误"
    http_status = 400


class ProblemNotAvailableError(ProblemError):
    """题目未启用或不可见"""
    default_code = 48001
    default_message = "当前题目暂不可用"


class ProblemNotInContestError(ProblemError):
    """题目不属于当前比赛"""
    default_code = 48003
    default_message = "当前比赛未包含该题目"


# ======================
# 提交 / 派发领域错误
# ======================

class SubmissionError(BizError):
    """提交相关通用错误基类"""
    default_code = 48100
    default_message = "提交相关错误"
    http_status = 400


class UnsupportedLanguageError(SubmissionError):
    """
    不支持的编程语言：
    - 在发起任何远程判题调用之前拒绝
    """
    default_code = 48103
    default_message = "不支持的编程语言"


class SourceTooLargeError(SubmissionError):
    """源代码超出长度上限"""
    default_code = 48104
    default_message = "源代码长度超出限制"


# ======================
# 判题回调领域错误
# ======================

class CallbackError(BizError):
    """判题回调相关错误基类"""
    default_code = 48200
    default_message = "判题回调错误"
    http_status = 400


class MalformedCallbackError(CallbackError):
    """
    回调载荷结构不合法：
    - 缺少 token / status
    - status.id 不是整数
    不产生任何状态变更
    """
    default_code = 48201
    default_message = "回调载荷不合法"


class UnknownTokenError(CallbackError):
    """
    回调携带的 token 找不到对应提交：
    - 可能是重放或伪造请求，需要记录安全日志
    """
    default_code = 48202
    default_message = "未知的判题 token"
    http_status = 404


# ======================
# 基础设施 / 第三方服务错误
# ======================

class InfrastructureError(BizError):
    """
    基础设施或第三方依赖不可用：
    - 缓存 / 队列 / 数据库 / 判题机等依赖故障
    """
    default_code = 50300
    default_message = "系统服务暂时不可用，请稍后重试"
    http_status = 503


class JudgeUnavailableError(InfrastructureError):
    """
    外部判题服务不可达：
    - 重试次数耗尽后仍连接失败 / 超时 / 5xx
    """
    default_code = 50305
    default_message = "判题服务暂时不可用，请稍后重试"


class TransientStoreError(InfrastructureError):
    """
    数据库暂时不可用：
    - 有限次重试后仍失败；调用方可以安全重试
    """
    default_code = 50306
    default_message = "数据存储暂时不可用，请稍后重试"
