"""
Messflow Modules.

The two sub-ledgers and their supporting records, built on
``messflow_kernel``:

- members: member balance ledger (transactions, renewals, reconciliation)
- payroll: staff, attendance, salary advances, payroll calculation and
  salary payment
- expenses: expense rows (salary payments write one per payment)
"""
