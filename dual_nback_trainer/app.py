"""Pygame UI shell for the Dual N-Back Trainer.

Deterministic timing/scoring/RNG/state lives in dual_nback_trainer/* (core
modules). This file only maps keys to core calls and draws snapshots.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol

import pygame

from .clock import RealClock
from .cognitive_core import BlockState
from .dual_nback import (
    BLOCK_LENGTH_MAX,
    BLOCK_LENGTH_MIN,
    INTERVAL_MS_MAX,
    INTERVAL_MS_MIN,
    N_MAX,
    N_MIN,
    DualNBackBlock,
    DualNBackConfig,
    DualNBackSnapshot,
    build_dual_nback_block,
)
from .speech import OfflineTtsAnnouncer

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
CELL_IDLE = (9, 20, 106)
CELL_ACTIVE = (244, 248, 255)
CELL_TEXT = (14, 26, 74)
PRACTICE_TEXT = (122, 136, 180)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def update(self) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def update(self) -> None:
        if self._screens:
            self._screens[-1].update()

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


@dataclass(frozen=True, slots=True)
class _SettingRow:
    label: str
    adjust: Callable[[DualNBackConfig, int], DualNBackConfig]
    show: Callable[[DualNBackConfig], str]


SETTING_ROWS: tuple[_SettingRow, ...] = (
    _SettingRow(
        "N-back",
        lambda c, d: replace(c, n=c.n + d),
        lambda c: str(c.n),
    ),
    _SettingRow(
        "Block length",
        lambda c, d: replace(c, block_length=c.block_length + d),
        lambda c: str(c.block_length),
    ),
    _SettingRow(
        "Interval (ms)",
        lambda c, d: replace(c, interval_ms=c.interval_ms + 100 * d),
        lambda c: str(c.interval_ms),
    ),
    _SettingRow(
        "Speech",
        lambda c, d: replace(c, speech_enabled=not c.speech_enabled),
        lambda c: "On" if c.speech_enabled else "Off",
    ),
)


class DualNBackScreen:
    """Settings, 3x3 grid, live stats and block summary on one screen.

    Keys: Up/Down pick a setting, Left/Right change it (only while not
    running), Enter/Space start, Esc stop (or quit when idle), R reset,
    A audio match, L position match.
    """

    def __init__(self, app: App, *, block: DualNBackBlock, speaker: OfflineTtsAnnouncer | None = None) -> None:
        self._app = app
        self._block = block
        self._speaker = speaker
        self._selected = 0
        self._was_running = False

        self._title_font = pygame.font.Font(None, 42)
        self._small_font = pygame.font.Font(None, 26)
        self._tiny_font = pygame.font.Font(None, 20)
        self._cell_font = pygame.font.Font(None, 64)

    @property
    def block(self) -> DualNBackBlock:
        return self._block

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key

        if key == pygame.K_a:
            self._block.press_audio_match()
            return
        if key == pygame.K_l:
            self._block.press_position_match()
            return

        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._block.start()
        elif key == pygame.K_ESCAPE:
            if self._block.running:
                self._block.stop()
            else:
                self._app.quit()
        elif key == pygame.K_r:
            self._block.reset()
        elif key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(SETTING_ROWS)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(SETTING_ROWS)
        elif key in (pygame.K_LEFT, pygame.K_RIGHT):
            delta = -1 if key == pygame.K_LEFT else 1
            row = SETTING_ROWS[self._selected]
            self._block.configure(row.adjust(self._block.config, delta))

    def update(self) -> None:
        self._block.update()
        running = self._block.running
        if self._speaker is not None:
            # Block ended (stopped or completed): silence the last letter.
            if self._was_running and not running:
                self._speaker.stop()
            self._speaker.update()
        self._was_running = running

    def render(self, surface: pygame.Surface) -> None:
        snap = self._block.snapshot()
        w, h = surface.get_size()
        surface.fill(BG)

        margin = max(10, min(26, w // 34))
        frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
        pygame.draw.rect(surface, PANEL_BG, frame)
        pygame.draw.rect(surface, BORDER, frame, 2)

        header_h = max(34, min(52, h // 8))
        header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
        pygame.draw.rect(surface, HEADER_BG, header)
        title = self._title_font.render("Dual N-Back Trainer", True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=header.center))

        body_top = header.bottom + 12
        col_w = frame.w // 3
        left = pygame.Rect(frame.x + 12, body_top, col_w - 24, frame.bottom - body_top - 40)
        mid = pygame.Rect(frame.x + col_w, body_top, col_w, frame.bottom - body_top - 40)
        right = pygame.Rect(frame.x + 2 * col_w + 12, body_top, col_w - 24, frame.bottom - body_top - 40)

        self._render_settings(surface, left, snap)
        self._render_grid(surface, mid, snap)
        if snap.summary is not None:
            self._render_summary(surface, right, snap)
        else:
            self._render_stats(surface, right, snap)

        footer = "Enter: Start  |  Esc: Stop/Quit  |  R: Reset  |  A: Audio match  |  L: Position match"
        foot = self._tiny_font.render(footer, True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))

    def _render_settings(self, surface: pygame.Surface, rect: pygame.Rect, snap: DualNBackSnapshot) -> None:
        editable = snap.state is not BlockState.RUNNING
        y = rect.y
        for idx, row in enumerate(SETTING_ROWS):
            selected = editable and idx == self._selected
            line = pygame.Rect(rect.x, y, rect.w, 34)
            pygame.draw.rect(surface, CELL_ACTIVE if selected else CELL_IDLE, line)
            color = CELL_TEXT if selected else (TEXT_MAIN if editable else TEXT_MUTED)
            surface.blit(self._small_font.render(row.label, True, color), (line.x + 8, line.y + 8))
            value = self._small_font.render(row.show(snap.config), True, color)
            surface.blit(value, value.get_rect(midright=(line.right - 8, line.centery)))
            y += 40

        limits = (
            f"N {N_MIN}-{N_MAX}, length {BLOCK_LENGTH_MIN}-{BLOCK_LENGTH_MAX}, "
            f"interval {INTERVAL_MS_MIN}-{INTERVAL_MS_MAX}"
        )
        surface.blit(self._tiny_font.render(limits, True, TEXT_MUTED), (rect.x, y + 4))

        y += 30
        hint = ("Press when the letter or square", "matches the one from N trials ago.")
        surface.blit(self._tiny_font.render(hint[0], True, TEXT_MUTED), (rect.x, y))
        surface.blit(self._tiny_font.render(hint[1], True, TEXT_MUTED), (rect.x, y + 18))
        if snap.in_practice:
            practice = f"Practice: scoring starts after {snap.config.n} trial(s)."
            surface.blit(self._tiny_font.render(practice, True, PRACTICE_TEXT), (rect.x, y + 44))

    def _render_grid(self, surface: pygame.Surface, rect: pygame.Rect, snap: DualNBackSnapshot) -> None:
        size = min(rect.w, rect.h) - 20
        cell = max(20, (size - 16) // 3)
        gx = rect.centerx - (cell * 3 + 16) // 2
        gy = rect.y + 10
        for i in range(9):
            r, c = divmod(i, 3)
            cell_rect = pygame.Rect(gx + c * (cell + 8), gy + r * (cell + 8), cell, cell)
            active = snap.highlight_position == i
            pygame.draw.rect(surface, CELL_ACTIVE if active else CELL_IDLE, cell_rect)
            pygame.draw.rect(surface, BORDER, cell_rect, 1)
            if active and snap.letter:
                glyph = self._cell_font.render(snap.letter, True, CELL_TEXT)
                surface.blit(glyph, glyph.get_rect(center=cell_rect.center))

        if snap.state is BlockState.RUNNING:
            progress = f"Trial {snap.trial_index + 1} / {snap.config.block_length}"
            text = self._small_font.render(progress, True, TEXT_MUTED)
            surface.blit(text, text.get_rect(midtop=(rect.centerx, gy + 3 * (cell + 8) + 4)))

    def _render_stats(self, surface: pygame.Surface, rect: pygame.Rect, snap: DualNBackSnapshot) -> None:
        lines = (
            f"Audio accuracy: {snap.accuracy.audio_pct}%",
            f"Position accuracy: {snap.accuracy.position_pct}%",
            f"Audio responses: {snap.audio_responses}",
            f"Position responses: {snap.position_responses}",
        )
        self._blit_lines(surface, rect, lines)

    def _render_summary(self, surface: pygame.Surface, rect: pygame.Rect, snap: DualNBackSnapshot) -> None:
        s = snap.summary
        assert s is not None
        lines = (
            "Block summary",
            f"Trials scored: {s.trials_scored}",
            f"Audio: {s.audio.correct} of {s.trials_scored} ({s.accuracy.audio_pct}%)",
            f"Position: {s.position.correct} of {s.trials_scored} ({s.accuracy.position_pct}%)",
            f"Combined: {s.accuracy.combined_pct}%",
            f"Matches - audio: {s.audio.matches}, position: {s.position.matches}",
            f"False alarms - audio: {s.audio.false_alarms}, position: {s.position.false_alarms}",
            "" if s.completed else f"Stopped after {s.trials_completed} trial(s)",
        )
        self._blit_lines(surface, rect, lines)

    def _blit_lines(self, surface: pygame.Surface, rect: pygame.Rect, lines: tuple[str, ...]) -> None:
        y = rect.y
        for line in lines:
            if line:
                surface.blit(self._small_font.render(line, True, TEXT_MAIN), (rect.x, y))
            y += 30


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Dual N-Back Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    speaker = OfflineTtsAnnouncer()
    block = build_dual_nback_block(clock=RealClock(), seed=_new_seed(), announcer=speaker)
    app.push(DualNBackScreen(app, block=block, speaker=speaker))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.update()
            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        speaker.stop()
        pygame.quit()

    return 0
