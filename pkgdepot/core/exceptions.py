"""统一异常体系

所有业务异常继承 PkgError，CLI 层据此输出友好提示。
"""

from __future__ import annotations


class PkgError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PkgError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(PkgError):
    """输入数据校验失败（包描述、uuid、哈希）"""

    code = "VALIDATION_ERROR"


class RegistryError(PkgError):
    """注册表数据不一致"""

    code = "REGISTRY_ERROR"


class DuplicateKeyError(RegistryError):
    """同一版本在重叠的版本区间中出现重复键"""

    code = "DUPLICATE_KEY"


class NameMismatchError(RegistryError):
    """同一 uuid 在不同注册表中名称不一致"""

    code = "NAME_MISMATCH"


class ResolveError(PkgError):
    """版本求解失败"""

    code = "RESOLVE_ERROR"


class UnsatisfiableError(ResolveError):
    """版本约束无解"""

    code = "UNSATISFIABLE"


class HashNotFoundError(ResolveError):
    """求解得到的版本在所有注册表中都找不到内容哈希"""

    code = "HASH_NOT_FOUND"


class InstallError(PkgError):
    """安装失败"""

    code = "INSTALL_ERROR"


class ObjectNotFoundError(InstallError):
    """所有镜像中都找不到内容哈希对应的对象"""

    code = "OBJECT_NOT_FOUND"


class WrongObjectKindError(InstallError):
    """内容哈希对应的对象不是 tree"""

    code = "WRONG_OBJECT_KIND"


class ManifestError(PkgError):
    """项目文件 / 锁文件中的条目无法唯一确定"""

    code = "MANIFEST_ERROR"


class ExecutionError(PkgError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"
