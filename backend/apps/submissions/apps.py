from django.apps import AppConfig


class SubmissionsConfig(AppConfig):
    """
    Submissions 应用配置：代码提交、判题派发与判题回调
    """

    default_auto_field = "django.db.models.BigAutoField"  # 默认主键类型
    name = "apps.submissions"  # 应用路径
    label = "submissions"  # 应用标签
    verbose_name = "代码提交"  # 应用在后台显示的名称
