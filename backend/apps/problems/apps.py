from django.apps import AppConfig


class ProblemsConfig(AppConfig):
    """
    Problems 应用配置：
    - 题目元数据（标识、难度），判题与计分都依赖这里的难度分值
    """

    default_auto_field = "django.db.models.BigAutoField"  # 默认主键类型
    name = "apps.problems"  # 应用路径
    label = "problems"  # 应用标签
    verbose_name = "Problems"  # 应用在后台显示的名称
