# -*- coding: utf-8 -*-


def to_resource_name(name: str) -> str:
    """
    Converts a given name to a resource name by replacing underscores with
    hyphens and converting to lowercase.
    """
    return name.replace("_", "-").lower()


def build_ecr_image_tag(account_id: str, region: str, image_name: str) -> str:
    """
    Full reference of an image hosted in ECR. The repository may live in the
    deploying account or in a separate one.
    """
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com/{image_name}"


def resolve_ecr_account_id(account_id: str, ecr_repo_account_id: str | None) -> str:
    return ecr_repo_account_id if ecr_repo_account_id else account_id
