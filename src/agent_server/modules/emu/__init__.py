from .adb import Adb, AdbError

__all__ = ["Adb", "AdbError"]
