#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Progress Aggregator
Расчёт выполнения, серий и рейтинга протоколов по снимку стены пользователя

Все методы чистые: текущее время передаётся явно, данные не изменяются.
Даты сравниваются с точностью до календарного дня в одном часовом поясе.

Версия: 2.0.0
"""

from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Any, Sequence, Union

from core.models import TrackedProtocol, CompletionEntry
from utils.datetime_utils import (
    get_timezone, to_day, start_of_week, end_of_week,
    start_of_month, end_of_month, days_between, iter_days, DEFAULT_TZ_NAME
)

DEFAULT_RANKING_LIMIT = 3
DEFAULT_HISTORY_DAYS = 7

# ===== ENUMS =====

class Timeframe(str, Enum):
    """Период для агрегирования"""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

class RankDirection(str, Enum):
    """Направление рейтинга"""
    TOP = "top"
    ATTENTION = "attention"

class InvalidTimeframeError(ValueError):
    """Неизвестный период"""
    pass

# ===== RESULT TYPES =====

@dataclass(frozen=True)
class Window:
    """Интервал дней, обе границы включительно"""
    start: date
    end: date

    @property
    def days(self) -> int:
        return max(days_between(self.start, self.end), 1)

    def contains(self, day: Optional[date]) -> bool:
        return day is not None and self.start <= day <= self.end

@dataclass(frozen=True)
class Streaks:
    current: int = 0
    longest: int = 0

@dataclass(frozen=True)
class RankedProtocol:
    title: str
    completion_count: int

@dataclass
class ProgressSummary:
    """Сводка прогресса для экрана статистики"""
    timeframe: str
    window_start: str
    window_end: str
    total_protocols: int
    daily_compliance: int
    overall_progress: int
    current_streak: int
    longest_streak: int
    days_applied: int
    days_all_satisfied: int
    top_performing: List[RankedProtocol] = field(default_factory=list)
    needs_attention: List[RankedProtocol] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

# ===== AGGREGATOR =====

class ProgressAggregator:
    """Агрегатор прогресса по истории выполнения протоколов"""

    def __init__(self, timezone: str = DEFAULT_TZ_NAME, ranking_limit: int = DEFAULT_RANKING_LIMIT):
        self.timezone_name = timezone
        self.tz = get_timezone(timezone)
        self.ranking_limit = ranking_limit

    def _day(self, value: Union[date, datetime, str]) -> Optional[date]:
        return to_day(value, self.tz)

    def _today(self, now: Union[date, datetime]) -> date:
        today = self._day(now)
        if today is None:
            raise ValueError(f"Invalid reference time: {now!r}")
        return today

    def _completed_days(self, protocol: TrackedProtocol) -> set:
        """Множество дней с отметками, неразбираемые даты отбрасываются"""
        days = {entry.day(self.tz) for entry in protocol.completion_history}
        days.discard(None)
        return days

    @staticmethod
    def _coerce_timeframe(timeframe: Union[Timeframe, str]) -> Timeframe:
        try:
            return Timeframe(timeframe)
        except ValueError:
            valid = [t.value for t in Timeframe]
            raise InvalidTimeframeError(f"timeframe must be one of: {valid}, got {timeframe!r}")

    # ----- windows -----

    def resolve_window(self, timeframe: Union[Timeframe, str], now: Union[date, datetime]) -> Window:
        """Интервал дней для периода, содержащий день now"""
        timeframe = self._coerce_timeframe(timeframe)
        today = self._today(now)

        if timeframe is Timeframe.DAY:
            return Window(today, today)
        if timeframe is Timeframe.WEEK:
            return Window(start_of_week(today), end_of_week(today))
        return Window(start_of_month(today), end_of_month(today))

    def filter_history(self, protocol: TrackedProtocol, window: Window) -> List[CompletionEntry]:
        return [
            entry for entry in protocol.completion_history
            if window.contains(entry.day(self.tz))
        ]

    # ----- percentages -----

    def daily_compliance(self, protocols: Sequence[TrackedProtocol], now: Union[date, datetime]) -> int:
        """Процент протоколов, выполненных сегодня"""
        if not protocols:
            return 0

        today = self._today(now)
        done = sum(1 for p in protocols if today in self._completed_days(p))
        return round(100 * done / len(protocols))

    def overall_progress(self, protocols: Sequence[TrackedProtocol], window: Window) -> int:
        """Плотность выполнения за интервал"""
        possible = len(protocols) * window.days
        if possible <= 0:
            return 0

        actual = sum(len(self.filter_history(p, window)) for p in protocols)
        return round(100 * actual / possible)

    # ----- streaks -----

    def fully_compliant_days(self, protocols: Sequence[TrackedProtocol]) -> List[date]:
        """Дни, в которые выполнены все протоколы, по возрастанию"""
        if not protocols:
            return []

        counts = Counter()
        for protocol in protocols:
            counts.update(self._completed_days(protocol))

        total = len(protocols)
        return sorted(day for day, count in counts.items() if count == total)

    def compute_streaks(self, protocols: Sequence[TrackedProtocol], now: Union[date, datetime]) -> Streaks:
        """Текущая и самая длинная серия полностью выполненных дней"""
        days = self.fully_compliant_days(protocols)
        if not days:
            return Streaks()

        # день -> длина серии, заканчивающейся этим днём
        runs: Dict[date, int] = {}
        for day in days:
            runs[day] = runs.get(day - timedelta(days=1), 0) + 1

        today = self._today(now)
        past = [day for day in days if day <= today]
        current = 0
        if past and (today - past[-1]).days <= 1:
            current = runs[past[-1]]

        return Streaks(current=current, longest=max(runs.values()))

    # ----- rankings -----

    def rank_protocols(self, protocols: Sequence[TrackedProtocol], window: Window,
                       direction: Union[RankDirection, str] = RankDirection.TOP,
                       limit: Optional[int] = None) -> List[RankedProtocol]:
        """Лучшие протоколы или протоколы без отметок за интервал"""
        try:
            direction = RankDirection(direction)
        except ValueError:
            raise ValueError(f"direction must be 'top' or 'attention', got {direction!r}")

        limit = self.ranking_limit if limit is None else limit
        counted = [
            RankedProtocol(title=p.title, completion_count=len(self.filter_history(p, window)))
            for p in protocols
        ]

        if direction is RankDirection.TOP:
            ranked = sorted(
                (item for item in counted if item.completion_count > 0),
                key=lambda item: item.completion_count,
                reverse=True,
            )
        else:
            ranked = [item for item in counted if item.completion_count == 0]

        return ranked[:max(limit, 0)]

    # ----- window day counters -----

    def days_applied(self, protocols: Sequence[TrackedProtocol], window: Window) -> int:
        """Дни интервала, в которые выполнен хотя бы один протокол"""
        days = set()
        for protocol in protocols:
            days.update(d for d in self._completed_days(protocol) if window.contains(d))
        return len(days)

    def days_all_satisfied(self, protocols: Sequence[TrackedProtocol], window: Window) -> int:
        return sum(1 for day in self.fully_compliant_days(protocols) if window.contains(day))

    # ----- per protocol history -----

    def compliance_history(self, protocol: TrackedProtocol, now: Union[date, datetime],
                           days: int = DEFAULT_HISTORY_DAYS) -> List[Dict[str, Any]]:
        """Отметки за последние days дней, от старых к новым"""
        today = self._today(now)
        completed = self._completed_days(protocol)
        start = today - timedelta(days=max(days, 1) - 1)
        return [
            {"date": day.isoformat(), "completed": day in completed}
            for day in iter_days(start, today)
        ]

    def success_rate(self, protocol: TrackedProtocol, now: Union[date, datetime],
                     days: int = DEFAULT_HISTORY_DAYS) -> int:
        history = self.compliance_history(protocol, now, days)
        return round(100 * sum(1 for item in history if item["completed"]) / len(history))

    # ----- summary -----

    def summarize(self, protocols: Sequence[TrackedProtocol], timeframe: Union[Timeframe, str],
                  now: Union[date, datetime]) -> ProgressSummary:
        """Полная сводка прогресса для периода"""
        timeframe = self._coerce_timeframe(timeframe)
        window = self.resolve_window(timeframe, now)
        streaks = self.compute_streaks(protocols, now)

        return ProgressSummary(
            timeframe=timeframe.value,
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            total_protocols=len(protocols),
            daily_compliance=self.daily_compliance(protocols, now),
            overall_progress=self.overall_progress(protocols, window),
            current_streak=streaks.current,
            longest_streak=streaks.longest,
            days_applied=self.days_applied(protocols, window),
            days_all_satisfied=self.days_all_satisfied(protocols, window),
            top_performing=self.rank_protocols(protocols, window, RankDirection.TOP),
            needs_attention=self.rank_protocols(protocols, window, RankDirection.ATTENTION),
        )
