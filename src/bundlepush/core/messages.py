"""
User-facing message tables.

Messages are keyed by id and formatted with ``str.format`` placeholders.
``lang`` selects a built-in table (``en``, ``cn``) or points at a YAML/JSON
file whose keys override the English table.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)


EN: Dict[str, str] = {
    "DUPLICATE_PATTERN_FOUND": "Upload task terminated due to duplicate match pattern",
    "DUPLICATE_PATTERN_QUESTION": "Duplicate match pattern {pattern} found, continue?",
    "INVALID_PATTERN": "Invalid match pattern",
    "EMPTY_CDN_CONFIG": "Empty CDN upload config",
    "EMPTY_ACCESS_OR_SECRET": "Empty {backend} access key or secret key",
    "EMPTY_BUCKET": "Empty {backend} bucket",
    "INVALID_FTP_DEST_PATH": "Invalid ftp destination path",
    "INVALID_FTP_HOST": "Invalid ftp host",
    "LANGUAGE_LOAD_FAILED": 'Invalid custom language file "{path}", using default output language',
    "INVALID_CDN_OPTIONS_LOADED": "Invalid cdn options loaded, please check your CDN options and rebuild: {reason}",
    "CDN_TYPE_NOT_SUPPORTED": "Not supported CDN type",
    "DELETE_PREVIOUS_ENABLED": "<deletePrevious> option enabled, deleting previous resources...",
    "PREVIOUS_LOG_NOT_EXISTS": "Previous log file doesn't exist",
    "INVALID_PREVIOUS_LOG_FILE": "Invalid previous log file",
    "EMPTY_PREVIOUS_LOG_FILE": "Empty previous uploaded file list",
    "DELETED_NUM_PREVIOUS_FILES": "Deleted {count} previous bundle files",
    "SKIP_DELETE_PREVIOUS_DUE_TO": "Skip deleting previous files due to: {reason}",
    "EMPTY_UPLOADING_FILES": "No uploading files found, check the test option if there are any issues",
    "UPLOAD_START": "Uploading bundle files to selected CDN...",
    "SINGLE_FILE_UPLOADED": "File uploaded: {name}",
    "LOADING_FILE_ERROR": "Error happened while loading file {name} due to {reason}",
    "UPLOADING_ERROR": "Error happened while uploading file {name} due to {reason}",
    "ALL_FILE_UPLOADED": "All bundle files have been uploaded successfully",
    "DELETE_OUTPUT_ENABLED": "<deleteOutput> option enabled, uploaded output files are deleted",
    "DELETE_OUTPUT_ERROR": "Error happened while deleting output file {name} due to {reason}",
    "SAVING_LOG_ERROR": "Error happened while saving uploaded log due to: {reason}",
    "FINAL_OUTPUT": "UPLOAD RESULT: Total:{attempted} Uploaded:{succeeded} Errors:{failed}",
}

CN: Dict[str, str] = {
    "DUPLICATE_PATTERN_FOUND": "发现重复CDN正则匹配, 已取消上传任务",
    "DUPLICATE_PATTERN_QUESTION": "发现重复CDN正则匹配 {pattern}, 是否继续?",
    "INVALID_PATTERN": "无效正则匹配参数",
    "EMPTY_CDN_CONFIG": "CDN参数为空",
    "EMPTY_ACCESS_OR_SECRET": "{backend} Access Key或Secret Key为空",
    "EMPTY_BUCKET": "{backend} Bucket为空",
    "INVALID_FTP_DEST_PATH": "请提供ftp上传目录",
    "INVALID_FTP_HOST": "请提供ftp地址",
    "LANGUAGE_LOAD_FAILED": '无效自定义文件"{path}", 使用默认输出语言',
    "INVALID_CDN_OPTIONS_LOADED": "无效CDN参数, 请检查并重新打包: {reason}",
    "CDN_TYPE_NOT_SUPPORTED": "暂不支持所选CDN类型",
    "DELETE_PREVIOUS_ENABLED": "<deletePrevious>选项为开启, 正在删除过往上传文件...",
    "PREVIOUS_LOG_NOT_EXISTS": "过往上传记录文件不存在",
    "INVALID_PREVIOUS_LOG_FILE": "无效过往上传记录文件",
    "EMPTY_PREVIOUS_LOG_FILE": "以往上传记录中文件列表为空",
    "DELETED_NUM_PREVIOUS_FILES": "已删除{count}个过往上传文件",
    "SKIP_DELETE_PREVIOUS_DUE_TO": "已跳过删除过往文件, 因为: {reason}",
    "EMPTY_UPLOADING_FILES": "无任何需要上传文件, 如有问题请检查正则匹配参数",
    "UPLOAD_START": "开始上传打包文件至CDN...",
    "SINGLE_FILE_UPLOADED": "文件已上传: {name}",
    "LOADING_FILE_ERROR": "读取文件{name}出错: {reason}",
    "UPLOADING_ERROR": "CDN上传出错: {name}, 因为: {reason}",
    "ALL_FILE_UPLOADED": "所有打包文件已上传成功",
    "DELETE_OUTPUT_ENABLED": "<deleteOutput>选项为开启, 已删除已上传输出文件",
    "DELETE_OUTPUT_ERROR": "删除输出文件{name}出错: {reason}",
    "SAVING_LOG_ERROR": "保存上传记录失败, 因为: {reason}",
    "FINAL_OUTPUT": "上传记录: 总任务{attempted} 已上传{succeeded} 出错{failed}",
}

BUILTIN = {"en": EN, "cn": CN}


class Messages:
    """Lookup + formatting over one message table."""

    def __init__(self, table: Mapping[str, str], lang: str = "en"):
        self.lang = lang
        self._table = dict(EN)
        self._table.update(table)

    def get(self, key: str, **params) -> str:
        template = self._table.get(key, key)
        if not params:
            return template
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError):
            # Broken custom template; fall back to the default wording.
            return EN.get(key, key).format(**params)

    __call__ = get


def _read_table(path: Path) -> Dict[str, str]:
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    if not isinstance(raw, dict):
        raise ValueError("message table must be a mapping")
    return {str(k): str(v) for k, v in raw.items()}


def load_messages(lang: Optional[str] = None) -> Messages:
    """
    Resolve the ``lang`` option to a message table.

    Unset selects Chinese, matching the historical default of the build
    plugin this tool replaces.
    """
    if lang is None:
        return Messages(CN, "cn")

    if lang in BUILTIN:
        return Messages(BUILTIN[lang], lang)

    path = Path(lang).expanduser()
    try:
        return Messages(_read_table(path), str(path))
    except (OSError, ValueError, yaml.YAMLError):
        messages = Messages(EN, "en")
        logger.warning(messages.get("LANGUAGE_LOAD_FAILED", path=lang))
        return messages


__all__ = ["Messages", "load_messages", "EN", "CN"]
