"""Service layer: validate input, run the domain, return ServiceResult."""
