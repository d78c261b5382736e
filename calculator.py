#!/usr/bin/env python3
"""
Keypad Calculator (Tkinter)

- Expression line + result line, basic keypad, optional scientific panel
- Light/Dark theme toggle
- Keyboard: digits . + - * / % ( ), Enter/= evaluate, Backspace delete,
  Delete/Esc clear
- All arithmetic lives in calc_engine; this module only routes presses
"""

from __future__ import annotations

import logging
import tkinter as tk
from tkinter import messagebox
from tkinter import font as tkfont
from dataclasses import dataclass
from typing import List, Optional

from calc_engine import CLEAR, DELETE, EQUALS, Calculator, Settings

logger = logging.getLogger(__name__)


# ============================ Small UI helpers ==============================

def _hex_to_rgb(h: str) -> tuple[int,int,int]:
    h = h.lstrip("#"); return tuple(int(h[i:i+2],16) for i in (0,2,4))
def _rgb_to_hex(r:int,g:int,b:int) -> str: return f"#{r:02x}{g:02x}{b:02x}"
def _mix(c1:str,c2:str,t:float)->str:
    r1,g1,b1=_hex_to_rgb(c1); r2,g2,b2=_hex_to_rgb(c2)
    r=round(r1+(r2-r1)*t); g=round(g1+(g2-g1)*t); b=round(b1+(b2-b1)*t)
    return _rgb_to_hex(r,g,b)

@dataclass
class Palette:
    name:str; bg:str; panel:str; fg:str; subtle:str; btn_bg:str; btn_active:str; accent:str; op_bg:str

LIGHT = Palette("light","#F6F7FB","#FFFFFF","#1F2937","#6B7280","#EEF1F7","#E5E7EB","#4F46E5","#E0E7FF")
DARK  = Palette("dark" ,"#0F172A","#111827","#E5E7EB","#9CA3AF","#1F2937","#334155","#60A5FA","#1E293B")

# Keypad layouts: rows of (label, action)
BASIC_ROWS = [
    [("C", CLEAR), ("⌫", DELETE), ("(", "lparen"), (")", "rparen")],
    [("7", "7"), ("8", "8"), ("9", "9"), ("÷", "divide")],
    [("4", "4"), ("5", "5"), ("6", "6"), ("×", "multiply")],
    [("1", "1"), ("2", "2"), ("3", "3"), ("−", "subtract")],
    [("0", "0"), (".", "dot"), ("%", "percent"), ("+", "add")],
]
SCI_ROWS = [
    [("sin", "sin"), ("cos", "cos"), ("tan", "tan")],
    [("ln", "ln"), ("log", "log"), ("√", "sqrt")],
    [("π", "pi"), ("e", "e"), ("=", EQUALS)],
]
_OP_ACTIONS = {"add", "subtract", "multiply", "divide", "percent"}

# =============================== Keypad UI ==================================

class CalculatorApp(tk.Tk):
    def __init__(self, settings: Optional[Settings] = None) -> None:
        super().__init__()
        self.title("Calculator"); self.minsize(360, 520)
        self.calc = Calculator(settings)
        self.palette: Palette = DARK
        self._sci_visible = False

        self._init_fonts(); self._build_ui(); self._apply_palette(); self._refresh()
        self.bind("<Key>", self._on_key)

    def _init_fonts(self) -> None:
        def choose(*names: str) -> str:
            avail = set(tkfont.families())
            for n in names:
                if n in avail: return n
            return "Segoe UI"
        self.fonts = {"ui": tkfont.Font(family=choose("Segoe UI","Arial"), size=11),
                      "key": tkfont.Font(family=choose("Segoe UI Semibold","Segoe UI","Arial"), size=14),
                      "expr": tkfont.Font(family=choose("Consolas","Courier New"), size=14),
                      "result": tkfont.Font(family=choose("Consolas","Courier New"), size=26, weight="bold")}

    def _build_ui(self) -> None:
        self.root_frame = tk.Frame(self, bd=0); self.root_frame.pack(fill="both", expand=True, padx=12, pady=12)

        self.topbar = tk.Frame(self.root_frame); self.topbar.pack(fill="x")
        self.mode_label = tk.Label(self.topbar, text="Basic mode", font=self.fonts["ui"], anchor="w")
        self.mode_label.pack(side="left")
        self.theme_btn = tk.Button(self.topbar, text="Light mode", relief="flat", command=self.toggle_theme)
        self.theme_btn.pack(side="right")
        self.sci_btn = tk.Button(self.topbar, text="Sci panel", relief="flat", command=self.toggle_scientific)
        self.sci_btn.pack(side="right", padx=(0, 6))

        self.display_panel = tk.Frame(self.root_frame, bd=0); self.display_panel.pack(fill="x", pady=(10, 8))
        self.expr_var = tk.StringVar(); self.result_var = tk.StringVar()
        self.expr_label = tk.Label(self.display_panel, textvariable=self.expr_var, anchor="e", font=self.fonts["expr"])
        self.expr_label.pack(fill="x", padx=10, pady=(10, 0))
        self.result_label = tk.Label(self.display_panel, textvariable=self.result_var, anchor="e", font=self.fonts["result"])
        self.result_label.pack(fill="x", padx=10, pady=(0, 10))

        self.keys = tk.Frame(self.root_frame); self.keys.pack(fill="both", expand=True)
        self.sci_frame = tk.Frame(self.keys)
        self.basic_frame = tk.Frame(self.keys); self.basic_frame.pack(side="left", fill="both", expand=True)

        self.buttons: List[tk.Button] = []
        self._layout(self.basic_frame, BASIC_ROWS)
        equals = self._add_btn(self.basic_frame, len(BASIC_ROWS), 0, "=", EQUALS)
        equals.grid(columnspan=4)
        self._layout(self.sci_frame, SCI_ROWS)

    def _layout(self, frame: tk.Frame, rows: List[list]) -> None:
        for c in range(max(len(r) for r in rows)): frame.grid_columnconfigure(c, weight=1)
        for r in range(len(rows) + 1): frame.grid_rowconfigure(r, weight=1)
        for r, row in enumerate(rows):
            for c, (label, action) in enumerate(row): self._add_btn(frame, r, c, label, action)

    def _add_btn(self, frame: tk.Frame, row: int, col: int, label: str, action: str) -> tk.Button:
        b = tk.Button(frame, text=label, relief="flat", bd=0, font=self.fonts["key"],
                      command=lambda a=action: self.press(a))
        b.grid(row=row, column=col, sticky="nsew", padx=3, pady=3, ipady=6)
        b._action = action  # type: ignore[attr-defined]
        self.buttons.append(b)
        return b

    # Theming
    def _style_button(self, b: tk.Button) -> None:
        p = self.palette; action = getattr(b, "_action", "")
        if action == EQUALS: base, fg = p.accent, "white"
        elif action in _OP_ACTIONS: base, fg = p.op_bg, p.fg
        else: base, fg = p.btn_bg, p.fg
        hov = _mix(base, "#ffffff", 0.08) if action == EQUALS else _mix(base, p.btn_active, 0.6)
        b.configure(bg=base, fg=fg, activebackground=hov, activeforeground=fg)
        b.bind("<Enter>", lambda _e: b.configure(bg=hov)); b.bind("<Leave>", lambda _e: b.configure(bg=base))

    def _apply_palette(self) -> None:
        p = self.palette
        self.configure(bg=p.bg)
        for w in (self.root_frame, self.topbar, self.keys, self.basic_frame, self.sci_frame):
            w.configure(bg=p.bg)
        self.mode_label.configure(bg=p.bg, fg=p.subtle)
        for b in (self.theme_btn, self.sci_btn):
            b.configure(bg=p.panel, fg=p.fg, activebackground=p.btn_active, activeforeground=p.fg)
        self.display_panel.configure(bg=p.panel)
        self.expr_label.configure(bg=p.panel, fg=p.subtle)
        self.result_label.configure(bg=p.panel, fg=p.fg)
        for b in self.buttons: self._style_button(b)

    def toggle_theme(self) -> None:
        self.palette = LIGHT if self.palette is DARK else DARK
        self.theme_btn.configure(text=("Dark mode" if self.palette is LIGHT else "Light mode"))
        self._apply_palette()

    def toggle_scientific(self) -> None:
        self._sci_visible = not self._sci_visible
        if self._sci_visible:
            self.sci_frame.pack(side="right", fill="both", expand=True, padx=(8, 0))
            self.mode_label.configure(text="Basic + Scientific"); self.sci_btn.configure(text="Basic only")
        else:
            self.sci_frame.pack_forget()
            self.mode_label.configure(text="Basic mode"); self.sci_btn.configure(text="Sci panel")

    # Actions
    def press(self, action: str) -> None:
        self.calc.press(action); self._refresh()

    def _refresh(self) -> None:
        self.expr_var.set(self.calc.expression_text)
        self.result_var.set(self.calc.result_text)

    def _on_key(self, event: tk.Event):
        ch = event.char or ""
        key = ch if ch.isprintable() and ch else event.keysym
        if self.calc.handle_key(key):
            self._refresh(); return "break"
        return None

# ============================= Entrypoint ===================================

LOG_FORMAT = "[%(asctime)s] %(name)s %(levelname)s: %(message)s"

def main() -> int:
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
        logger.error("invalid configuration: %s", exc); return 1
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    try:
        app = CalculatorApp(settings); app.mainloop(); return 0
    except Exception as exc:
        logger.exception("calculator crashed")
        messagebox.showerror("Fatal Error", str(exc)); return 1

if __name__ == "__main__":
    raise SystemExit(main())
