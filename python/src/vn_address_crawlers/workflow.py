from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from . import locators
from .errors import ConversionTimeout, ElementNotFound, ExtractionFailed, PrefectureNotFound
from .extraction import match_pattern, match_scan, match_structural, ward_name
from .fallback import PREFECTURE_FALLBACK_PREFIXES, fallback_label
from .fsm import FSMConfig, FSMRunner
from .locators import Locator
from .records import InputRecord
from .session import BrowserSession

NOTICE_TIMEOUT_SECONDS = 3.0


class WorkflowState(Enum):
    NAVIGATE = "NAVIGATE"
    SELECT_CITY = "SELECT_CITY"
    SELECT_PREFECTURE = "SELECT_PREFECTURE"
    SELECT_WARD = "SELECT_WARD"
    SUBMIT = "SUBMIT"
    EXTRACT = "EXTRACT"
    DONE = "DONE"


@dataclass(frozen=True)
class WorkflowOutcome:
    new_name: str
    used_fallback: bool
    prefecture_label: str


@dataclass
class WorkflowContext:
    logger: logging.Logger
    session: BrowserSession
    record: InputRecord
    base_url: str
    timeout_seconds: float
    operation_delay: float
    fallback_table: tuple[tuple[str, str], ...]
    prefecture_label: str | None = None
    new_name: str | None = None


# Layered extraction: (name, locator, matcher), tried in order.
EXTRACTION_LAYERS: tuple[tuple[str, Locator, Callable[[list[str]], str | None]], ...] = (
    ("structure", locators.NEW_ADDRESS_PARAGRAPHS, match_structural),
    ("pattern", locators.RESULT_SECTION_PARAGRAPHS, match_pattern),
    ("scan", locators.ALL_PARAGRAPHS, match_scan),
)


def _open_selector(context: WorkflowContext, placeholder: str) -> None:
    if not context.session.try_click(locators.selector_button(placeholder), context.timeout_seconds):
        raise ElementNotFound(f"Selector not found: {placeholder}")
    context.session.pause(context.operation_delay)


def _choose_option(context: WorkflowContext, label: str) -> bool:
    return context.session.try_click(locators.option_by_label(label), context.timeout_seconds)


def dismiss_notice(context: WorkflowContext) -> None:
    if context.session.try_click(locators.NOTICE_CLOSE_BUTTON, NOTICE_TIMEOUT_SECONDS):
        context.session.pause(1.0)
        context.logger.info("Closed notification dialog")
    else:
        context.logger.info("No dialog to close")


def state_navigate(context: WorkflowContext) -> WorkflowState:
    context.logger.info("Stage=%s opening %s", WorkflowState.NAVIGATE.value, context.base_url)
    context.session.navigate(context.base_url)
    dismiss_notice(context)
    return WorkflowState.SELECT_CITY


def state_select_city(context: WorkflowContext) -> WorkflowState:
    city_name = context.record.city_name
    context.logger.info("Stage=%s city=%s", WorkflowState.SELECT_CITY.value, city_name)
    _open_selector(context, locators.CITY_PLACEHOLDER)
    if not _choose_option(context, city_name):
        raise ElementNotFound(f"City option not found: {city_name}")
    return WorkflowState.SELECT_PREFECTURE


def state_select_prefecture(context: WorkflowContext) -> WorkflowState:
    pref_name = context.record.pref_name
    context.logger.info("Stage=%s prefecture=%s", WorkflowState.SELECT_PREFECTURE.value, pref_name)
    _open_selector(context, locators.PREFECTURE_PLACEHOLDER)

    if _choose_option(context, pref_name):
        context.prefecture_label = pref_name
        return WorkflowState.SELECT_WARD

    substitute = fallback_label(pref_name, context.fallback_table)
    if substitute is None:
        context.logger.warning("Prefecture not found and no fallback available: %s", pref_name)
        raise PrefectureNotFound(pref_name)

    context.logger.warning("Prefecture not found: %s, trying fallback %s", pref_name, substitute)
    if not _choose_option(context, substitute):
        raise PrefectureNotFound(pref_name, substitute)

    context.logger.info("Prefecture selected via fallback: %s", substitute)
    context.prefecture_label = substitute
    return WorkflowState.SELECT_WARD


def state_select_ward(context: WorkflowContext) -> WorkflowState:
    context.logger.info("Stage=%s picking first ward option", WorkflowState.SELECT_WARD.value)
    _open_selector(context, locators.WARD_PLACEHOLDER)
    if not context.session.try_click(locators.FIRST_OPTION, context.timeout_seconds):
        raise ElementNotFound("No ward option available")
    return WorkflowState.SUBMIT


def state_submit(context: WorkflowContext) -> WorkflowState:
    context.logger.info("Stage=%s", WorkflowState.SUBMIT.value)
    if not context.session.try_click(locators.CONVERT_BUTTON, context.timeout_seconds):
        raise ElementNotFound("Convert button not found")

    visible = context.session.wait_until(
        lambda session: session.is_visible(locators.RESULT_MARKER),
        context.timeout_seconds,
    )
    if not visible:
        raise ConversionTimeout(
            f"No conversion result within {context.timeout_seconds:g}s for {context.record.pref_name}"
        )
    return WorkflowState.EXTRACT


def state_extract(context: WorkflowContext) -> WorkflowState:
    for layer_name, locator, matcher in EXTRACTION_LAYERS:
        full_text = matcher(context.session.read_texts(locator))
        if full_text:
            context.new_name = ward_name(full_text)
            context.logger.info(
                "Stage=%s extracted via %s: %s -> %s",
                WorkflowState.EXTRACT.value,
                layer_name,
                full_text,
                context.new_name,
            )
            return WorkflowState.DONE
        context.logger.info("Extraction layer %s found nothing", layer_name)

    raise ExtractionFailed("Failed to extract result text - no matching paragraph found")


def pace_transition(context: WorkflowContext, from_state: WorkflowState, to_state: WorkflowState) -> None:
    if to_state == WorkflowState.DONE:
        return
    context.session.pause(context.operation_delay)


class ConversionWorkflow:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        operation_delay: float,
        logger: logging.Logger | None = None,
        fallback_table: tuple[tuple[str, str], ...] = PREFECTURE_FALLBACK_PREFIXES,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.operation_delay = operation_delay
        self.logger = logger or logging.getLogger("crawler.address_converter")
        self.fallback_table = fallback_table
        self.fsm: FSMRunner[WorkflowState, WorkflowContext] = FSMRunner(
            initial_state=WorkflowState.NAVIGATE,
            terminal_state=WorkflowState.DONE,
            handlers={
                WorkflowState.NAVIGATE: state_navigate,
                WorkflowState.SELECT_CITY: state_select_city,
                WorkflowState.SELECT_PREFECTURE: state_select_prefecture,
                WorkflowState.SELECT_WARD: state_select_ward,
                WorkflowState.SUBMIT: state_submit,
                WorkflowState.EXTRACT: state_extract,
            },
            on_transition=pace_transition,
            config=FSMConfig(max_steps=len(WorkflowState)),
        )

    def convert(self, session: BrowserSession, record: InputRecord) -> WorkflowOutcome:
        context = WorkflowContext(
            logger=self.logger,
            session=session,
            record=record,
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            operation_delay=self.operation_delay,
            fallback_table=self.fallback_table,
        )
        trace = self.fsm.run(context)
        self.logger.info(
            "Workflow %s for pref_old_id=%d via %s",
            trace.final_state.value,
            record.pref_old_id,
            " -> ".join(state.value for state in trace.visited),
        )

        if context.new_name is None or context.prefecture_label is None:
            raise ExtractionFailed(f"Workflow finished without a result for {record.pref_name}")
        return WorkflowOutcome(
            new_name=context.new_name,
            used_fallback=context.prefecture_label != record.pref_name,
            prefecture_label=context.prefecture_label,
        )
