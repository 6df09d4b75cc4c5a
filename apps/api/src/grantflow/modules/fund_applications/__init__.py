"""
Fund Applications Module

A project applies to a fund, answers the fund's concretization questions,
and submits once every self-assessment is complete and the fund's
submission period is open. Submitted applications are rated by the fund's
jury.

API Endpoints:
- POST /fund-applications - Apply to a fund
- PATCH /fund-applications/{id} - Edit answers and self-assessments
- POST /fund-applications/{id}/submit - Submit to the jury
- PUT /fund-applications/{id}/rating - Rate as a juror
"""
