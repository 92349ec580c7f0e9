FOLDER_COLORS = (
    "bg-blue-100 text-blue-600",
    "bg-green-100 text-green-600",
    "bg-yellow-100 text-yellow-600",
    "bg-purple-100 text-purple-600",
    "bg-pink-100 text-pink-600",
    "bg-indigo-100 text-indigo-600",
    "bg-red-100 text-red-600",
    "bg-orange-100 text-orange-600",
    "bg-teal-100 text-teal-600",
)

TAG_COLORS = FOLDER_COLORS + ("bg-cyan-100 text-cyan-600",)


def _pick(key: str, palette: tuple[str, ...]) -> str:
    return palette[sum(ord(char) for char in key) % len(palette)]


def folder_color(folder_id) -> str:
    return _pick(str(folder_id), FOLDER_COLORS)


def tag_color(tag_name: str) -> str:
    return _pick(tag_name or "", TAG_COLORS)
