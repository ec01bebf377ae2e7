"""
常量和枚举定义
"""
from enum import Enum


class ActionName(str, Enum):
    """指令名称"""
    OBSERVE_SCREEN = "observeScreen"
    TAP_ELEMENT = "tapElement"
    FILL_FIELD = "fillField"
    TAP_COORDINATE = "tapCoordinate"
    SWIPE = "swipe"
    SCROLL_UNTIL_VISIBLE = "scrollUntilVisible"
    WAIT_FOR_ELEMENT = "waitForElement"
    PRESS_KEY = "pressKey"
    LONG_PRESS = "longPress"
    DOUBLE_TAP = "doubleTap"
    CHAIN = "chain"
    PING = "ping"


class SwipeDirection(str, Enum):
    """滑动方向"""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class ElementType(str, Enum):
    """元素类别（线上名称）"""
    BUTTON = "button"
    STATIC_TEXT = "staticText"
    TEXT_FIELD = "textField"
    SECURE_TEXT_FIELD = "secureTextField"
    TEXT_VIEW = "textView"
    SEARCH_FIELD = "searchField"
    IMAGE = "image"
    CELL = "cell"
    TABLE = "table"
    COLLECTION_VIEW = "collectionView"
    SCROLL_VIEW = "scrollView"
    NAVIGATION_BAR = "navigationBar"
    TAB_BAR = "tabBar"
    TOOLBAR = "toolbar"
    SWITCH = "switch"
    TOGGLE = "toggle"
    SLIDER = "slider"
    ALERT = "alert"
    SHEET = "sheet"
    POP_UP_BUTTON = "popUpButton"
    MENU_ITEM = "menuItem"
    LINK = "link"
    WINDOW = "window"
    GROUP = "group"
    OTHER = "other"
    ELEMENT = "element"


# 文本输入类控件（fillField 专用定位范围）
TEXT_INPUT_TYPES = (
    ElementType.TEXT_FIELD,
    ElementType.SECURE_TEXT_FIELD,
    ElementType.TEXT_VIEW,
    ElementType.SEARCH_FIELD,
)

# 主应用快照：类别 -> 采样上限
PRIMARY_SNAPSHOT_CAPS = (
    (ElementType.BUTTON, 30),
    (ElementType.TEXT_FIELD, 10),
    (ElementType.SECURE_TEXT_FIELD, 5),
    (ElementType.TEXT_VIEW, 5),
    (ElementType.SEARCH_FIELD, 5),
    (ElementType.SWITCH, 10),
    (ElementType.TOGGLE, 10),
    (ElementType.SLIDER, 5),
    (ElementType.POP_UP_BUTTON, 10),
    (ElementType.MENU_ITEM, 15),
    (ElementType.LINK, 10),
    (ElementType.ALERT, 5),
    (ElementType.SHEET, 5),
    (ElementType.TOOLBAR, 5),
    (ElementType.STATIC_TEXT, 15),
)

# 系统浮层快照：类别 -> 采样上限
OVERLAY_SNAPSHOT_CAPS = (
    (ElementType.BUTTON, 15),
    (ElementType.STATIC_TEXT, 10),
    (ElementType.TEXT_FIELD, 5),
    (ElementType.ALERT, 5),
)

# 弹窗子树递归深度；子节点数不在 (0, 50) 内时不展开
ALERT_MAX_DEPTH = 2
MAX_EXPANDED_CHILDREN = 50

# pressKey 具名按键 -> 特殊字符序列
SPECIAL_KEYS = {
    "return": "\n",
    "enter": "\n",
    "delete": "\b",
    "backspace": "\b",
    "escape": "\x1b",
    "tab": "\t",
}

# fillField clearFirst 时查找的全选项（忽略大小写，不限类型）
SELECT_ALL_LABEL = "Select All"

# 路由固定响应体
PONG_BODY = '{"success":true,"message":"pong"}'
