from enum import IntFlag, auto


class RegexFlag(IntFlag):
    NOFLAG = 0
    DETERMINIZE = auto()
    MINIMIZE = auto()  # implies DETERMINIZE
    DEBUG = auto()

    def should_determinize(self) -> bool:
        return bool(self & (RegexFlag.DETERMINIZE | RegexFlag.MINIMIZE))

    def should_minimize(self) -> bool:
        return bool(self & RegexFlag.MINIMIZE)

    def debug(self) -> bool:
        return bool(self & RegexFlag.DEBUG)
