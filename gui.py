# GUI:
import threading
import traceback
from typing import Any, Dict, List, Optional, Tuple
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

# import backend and utils
from expression import Expression
from main import Settings, format_error, run_all
from root_finding import METHODS, RootResult
from workability import Workability, analyze
import utils

ALL_METHODS = "All methods"
METHOD_CHOICES = [ALL_METHODS] + [spec.label for spec in METHODS.values()]


def selected_methods(choice: str) -> List[str]:
    """Map a combobox label to registry names."""
    if choice == ALL_METHODS:
        return list(METHODS)
    return [name for name, spec in METHODS.items() if spec.label == choice]


def summary_lines(results: Dict[str, RootResult], work: Workability, settings: Settings) -> List[str]:
    lines = [
        f"Interval: [{settings.a}, {settings.b}]",
        f"Precision: {settings.x_precision:g}   Max steps: {settings.max_steps}",
        "",
    ]
    for name, result in results.items():
        if result.ok:
            lines.append(f"{METHODS[name].label}: root = {result.root!r} after {result.steps} step(s)")
        else:
            lines.append(f"{METHODS[name].label}: failed ({result.failure.value}) after {result.steps} step(s)")
    lines.append("")
    lines.append("Workability:")
    lines.extend(f" - {note}" for note in work.notes)
    return lines


def table_values(row: Dict[str, Any]) -> Tuple[Any, ...]:
    return (
        METHODS[row["method"]].label,
        row["step"],
        utils.pretty_format_number(row["x"], digits=12),
        utils.pretty_format_number(row["f(x)"], digits=12),
    )


# ----------------- GUI -----------------
class RootFindingGUI:
    def __init__(self, root: tk.Tk):
        self.root = root
        root.title("Root Finding - Numerical Project")
        root.geometry("900x640")
        root.minsize(820, 560)

        # style
        style = ttk.Style()
        style.theme_use("clam")
        style.configure("Header.TLabel", font=("Segoe UI", 14, "bold"))
        style.configure("TButton", padding=6)
        style.configure("Small.TButton", padding=4)
        style.configure("Treeview.Heading", font=("Segoe UI", 10, "bold"))

        defaults = Settings()

        # top frame: inputs
        top = ttk.Frame(root, padding=(12, 10))
        top.pack(side="top", fill="x")

        ttk.Label(top, text="Function f(x):", style="Header.TLabel").grid(row=0, column=0, sticky="w")
        self.func_var = tk.StringVar(value="x^3 - x - 2")
        self.func_entry = ttk.Entry(top, textvariable=self.func_var, font=("Segoe UI", 11))
        self.func_entry.grid(row=0, column=1, columnspan=5, sticky="we", padx=(8, 0))

        ttk.Label(top, text="Interval [a, b]:").grid(row=1, column=0, sticky="w", pady=(8, 0))
        self.a_var = tk.StringVar(value=str(defaults.a))
        self.b_var = tk.StringVar(value=str(defaults.b))
        ttk.Entry(top, width=12, textvariable=self.a_var).grid(row=1, column=1, sticky="w", padx=(8, 2), pady=(8, 0))
        ttk.Entry(top, width=12, textvariable=self.b_var).grid(row=1, column=2, sticky="w", padx=(4, 2), pady=(8, 0))

        ttk.Label(top, text="Digits (d):").grid(row=1, column=3, sticky="w", pady=(8, 0))
        self.d_var = tk.StringVar(value=str(defaults.digits))
        ttk.Entry(top, width=6, textvariable=self.d_var).grid(row=1, column=4, sticky="w", pady=(8, 0))

        ttk.Label(top, text="Max steps:").grid(row=2, column=3, sticky="w", pady=(8, 0))
        self.steps_var = tk.StringVar(value=str(defaults.max_steps))
        ttk.Entry(top, width=6, textvariable=self.steps_var).grid(row=2, column=4, sticky="w", pady=(8, 0))

        ttk.Label(top, text="Method:").grid(row=2, column=0, sticky="w", pady=(8, 0))
        self.method_var = tk.StringVar(value=ALL_METHODS)
        ttk.Combobox(top, values=METHOD_CHOICES, textvariable=self.method_var, state="readonly").grid(
            row=2, column=1, columnspan=2, sticky="we", padx=(8, 0), pady=(8, 0)
        )

        # Buttons: Run / Export
        button_frame = ttk.Frame(top)
        button_frame.grid(row=0, column=6, rowspan=3, padx=(12, 0), sticky="n")

        self.run_btn = ttk.Button(button_frame, text="Find Root", command=self.on_run, width=16)
        self.run_btn.pack(pady=(0, 8))
        self.export_btn = ttk.Button(button_frame, text="Export CSV", command=self.on_export, width=16, state="disabled")
        self.export_btn.pack(pady=(0, 8))
        ttk.Button(button_frame, text="Clear Table", command=self.on_clear, width=16).pack(pady=(0, 8))

        # progress bar / status
        self.status_var = tk.StringVar(value="Ready")
        self.progress = ttk.Progressbar(root, mode="indeterminate")
        self.status = ttk.Label(root, textvariable=self.status_var)
        self.progress.pack(side="top", fill="x", padx=12, pady=(6, 0))
        self.status.pack(side="top", anchor="w", padx=12, pady=(4, 8))

        # Results: summary + treeview table
        results_frame = ttk.Frame(root, padding=(12, 8))
        results_frame.pack(side="top", fill="both", expand=True)
        results_frame.columnconfigure(0, weight=1)
        results_frame.rowconfigure(1, weight=1)

        summary_frame = ttk.Frame(results_frame)
        summary_frame.grid(row=0, column=0, sticky="we")
        summary_frame.columnconfigure(0, weight=1)

        ttk.Label(summary_frame, text="Summary:", style="Header.TLabel").grid(row=0, column=0, sticky="w")
        text_container = ttk.Frame(summary_frame)
        text_container.grid(row=1, column=0, sticky="we", pady=(6, 0))
        text_container.columnconfigure(0, weight=1)

        self.summary_text = tk.Text(text_container, height=8, wrap="word", font=("Segoe UI", 10))
        self.summary_text.grid(row=0, column=0, sticky="nsew")
        self.summary_text.configure(state="disabled")

        summary_vsb = ttk.Scrollbar(text_container, orient="vertical", command=self.summary_text.yview)
        summary_vsb.grid(row=0, column=1, sticky="ns")
        self.summary_text.configure(yscrollcommand=summary_vsb.set)

        # Treeview for iterates
        tree_frame = ttk.Frame(results_frame)
        tree_frame.grid(row=1, column=0, sticky="nsew", pady=(8, 0))
        tree_frame.columnconfigure(0, weight=1)
        tree_frame.rowconfigure(0, weight=1)

        cols = tuple(utils.FIELDNAMES)
        self.tree = ttk.Treeview(tree_frame, columns=cols, show="headings", selectmode="browse")
        for c in cols:
            self.tree.heading(c, text=c)
            self.tree.column(c, anchor="center", width=160)
        self.tree.grid(row=0, column=0, sticky="nsew")

        vsb = ttk.Scrollbar(tree_frame, orient="vertical", command=self.tree.yview)
        vsb.grid(row=0, column=1, sticky="ns")
        self.tree.configure(yscrollcommand=vsb.set)

        # keep last iterates for export
        self._last_iterations: Optional[List[Dict[str, Any]]] = None

    def _set_summary(self, lines: List[str]) -> None:
        self.summary_text.configure(state="normal")
        self.summary_text.delete("1.0", "end")
        self.summary_text.insert("1.0", "\n".join(lines))
        self.summary_text.configure(state="disabled")
        self.summary_text.yview_moveto(0.0)

    def on_clear(self):
        for r in self.tree.get_children():
            self.tree.delete(r)
        self._set_summary([])
        self._last_iterations = None
        self.export_btn.configure(state="disabled")
        self.status_var.set("Cleared")

    def on_export(self):
        if not self._last_iterations:
            messagebox.showinfo("Nothing to export", "No iterations to export.")
            return
        fname = filedialog.asksaveasfilename(
            defaultextension=".csv",
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
            title="Save iterations as CSV"
        )
        if not fname:
            return
        try:
            utils.ensure_dir_for_file(fname)
            utils.save_iterations_to_csv(self._last_iterations, fname)
            messagebox.showinfo("Saved", f"Saved iterations to:\n{fname}")
        except OSError as exc:
            messagebox.showerror("Save error", f"Failed to save CSV:\n{exc}")

    def on_run(self):
        expr = Expression(self.func_var.get())
        result = expr.validate()
        if not result.ok:
            messagebox.showerror("Expression error", format_error(expr.source, result.position, result.message))
            return
        try:
            settings = Settings(
                a=float(self.a_var.get().strip()),
                b=float(self.b_var.get().strip()),
                digits=int(self.d_var.get().strip()),
                max_steps=int(self.steps_var.get().strip()),
            )
            if settings.digits <= 0:
                raise ValueError("digits must be positive")
        except ValueError:
            messagebox.showerror("Input error", "Please enter numeric a, b, positive integer digits and integer max steps.")
            return
        names = selected_methods(self.method_var.get())
        # disable run button & start progress
        self.run_btn.configure(state="disabled")
        self.export_btn.configure(state="disabled")
        self.progress.start(10)
        self.status_var.set("Running...")
        # run backend in background thread
        thread = threading.Thread(target=self._run_thread, args=(expr, settings, names), daemon=True)
        thread.start()

    def _run_thread(self, expr: Expression, settings: Settings, names: List[str]):
        try:
            work = analyze(expr, settings.a, settings.b, settings.x_precision)
            results, rows = run_all(expr, settings, names=names)
            payload = {"lines": summary_lines(results, work, settings), "rows": rows}
        except Exception as exc:
            payload = {"error": f"Unhandled exception in backend: {exc}\n{traceback.format_exc()}"}
        # schedule UI update on main thread
        self.root.after(50, lambda: self._on_done(payload))

    def _on_done(self, payload: Dict[str, Any]):
        self.progress.stop()
        self.run_btn.configure(state="normal")
        if "error" in payload:
            self.status_var.set("Error")
            messagebox.showerror("Root finding error", payload["error"])
            return

        self._set_summary(payload["lines"])
        self._last_iterations = payload["rows"]

        for r in self.tree.get_children():
            self.tree.delete(r)
        for row in self._last_iterations:
            self.tree.insert("", "end", values=table_values(row))

        if self._last_iterations:
            self.export_btn.configure(state="normal")
            self.status_var.set(f"Done - produced {len(self._last_iterations)} iterations.")
        else:
            self.status_var.set("Done - no iterations produced.")


def run_app():
    root = tk.Tk()
    RootFindingGUI(root)
    root.mainloop()


if __name__ == "__main__":
    run_app()
