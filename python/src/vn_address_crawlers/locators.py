from __future__ import annotations

from selenium.webdriver.common.by import By

Locator = tuple[str, str]

CITY_PLACEHOLDER = "-- Chọn tỉnh/thành phố --"
PREFECTURE_PLACEHOLDER = "-- Chọn quận/huyện --"
WARD_PLACEHOLDER = "-- Chọn phường/xã --"
CONVERT_BUTTON_TEXT = "Chuyển đổi địa chỉ"
RESULT_MARKER_TEXT = "Kết quả chuyển đổi"
NEW_ADDRESS_LABEL = "📍 Địa chỉ mới:"


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def selector_button(placeholder: str) -> Locator:
    return (By.XPATH, f"//button[normalize-space(.)={xpath_literal(placeholder)}]")


def option_by_label(label: str) -> Locator:
    return (By.XPATH, f"//*[@role='option'][normalize-space(.)={xpath_literal(label)}]")


FIRST_OPTION: Locator = (By.XPATH, "(//*[@role='option'])[1]")
NOTICE_CLOSE_BUTTON: Locator = (
    By.XPATH,
    "//button[normalize-space(.)='Close' or @aria-label='Close']",
)
CONVERT_BUTTON: Locator = (
    By.XPATH,
    f"//button[contains(normalize-space(.), {xpath_literal(CONVERT_BUTTON_TEXT)})]",
)
RESULT_MARKER: Locator = (
    By.XPATH,
    f"//*[contains(normalize-space(text()), {xpath_literal(RESULT_MARKER_TEXT)})]",
)

# Paragraphs beside the "new address" label, the result section, the whole page.
NEW_ADDRESS_PARAGRAPHS: Locator = (
    By.XPATH,
    f"//div[normalize-space(.)={xpath_literal(NEW_ADDRESS_LABEL)}]/parent::*/*//p",
)
RESULT_SECTION_PARAGRAPHS: Locator = (
    By.XPATH,
    f"//div[contains(normalize-space(.), {xpath_literal(RESULT_MARKER_TEXT)})]//p",
)
ALL_PARAGRAPHS: Locator = (By.XPATH, "//p")
