"""
Test fixtures for DocDrift.

This module provides sample source files, documentation pages and helpers
for building small project trees in tests.
"""

from pathlib import Path

# Python sources

SIMPLE_MODULE = '''
def greet(name):
    """Say hello to someone."""
    return f"Hello, {name}!"
'''

PROCESS_V1 = '''
def process(a):
    """Process one item."""
    return a
'''

# Scenario A: a required parameter is added to a documented export
PROCESS_V2_REQUIRED = '''
def process(a, b):
    """Process one item."""
    return a + b
'''

PROCESS_V2_OPTIONAL = '''
def process(a, b=None):
    """Process one item."""
    return a
'''

PROCESS_COMMENT_ONLY = '''
# Processing helpers.
def process(a):
    """Process one item, unchanged."""
    return a
'''

# Scenario C: a brand-new export nobody documents
PROCESS_WITH_NEW_EXPORT = '''
def process(a):
    """Process one item."""
    return a


def summarize(items):
    return len(items)
'''

CLASS_MODULE = '''
class Calculator:
    """A simple calculator class."""

    precision = 2

    def __init__(self, value=0):
        self.value = value

    def add(self, x):
        if x is None:
            return self.value
        self.value += x
        return self.value

    def _reset(self):
        self.value = 0
'''

COMPLEX_FUNCTION = '''
def classify(value, strict=False):
    if value is None:
        return "none"
    elif value < 0 and strict:
        return "negative"
    for _ in range(3):
        while False:
            pass
    try:
        int(value)
    except ValueError:
        return "bad"
    return "big" if value > 10 else "small"
'''

EXPLICIT_ALL = '''
__all__ = ["public_api"]


def public_api():
    return helper()


def helper():
    return 1


def _private():
    return 2
'''

TYPED_MODULE = '''
from typing import NewType, Protocol, TypeAlias

UserId = NewType("UserId", int)
Payload: TypeAlias = dict[str, int]


class Reader(Protocol):
    def read(self, size: int) -> bytes:
        ...


async def fetch(url: str, *, timeout: float = 5.0) -> bytes:
    return b""
'''

SYNTAX_ERROR = '''
def broken(:
    return
'''

# Other languages

TYPESCRIPT_MODULE = '''
import { readFile } from "fs";

export interface Options {
  verbose: boolean;
  retries?: number;
}

export type Mode = "fast" | "safe";

export function connect(url: string, options?: Options): Promise<void> {
  if (options && options.verbose) {
    console.log(url);
  }
  return Promise.resolve();
}

export const close = async (force: boolean) => {
  return force;
};

function internal() {
  return 1;
}

export class Client extends Base {
  name: string;

  constructor(name: string) {
    super();
    this.name = name;
  }

  send(message: string): void {
    return;
  }

  private secret() {
    return 2;
  }
}
'''

C_MODULE = '''
#include <stdio.h>
#include "util.h"

struct Point {
    int x;
    int y;
};

int add(int a, int b) {
    if (a > 0 && b > 0) {
        return a + b;
    }
    return 0;
}

static int helper(void) {
    return 1;
}
'''

JAVA_MODULE = '''
package com.example;

import java.util.List;

public class Greeter extends Base {
    private String name;

    public String greet(String who) {
        return "hi " + who;
    }

    private void reset() {
        name = null;
    }
}
'''

GO_MODULE = '''
package shapes

import (
    "fmt"
    "math"
)

type Shape interface {
    Area() float64
}

type Circle struct {
    Radius float64
}

func (c Circle) Area() float64 {
    return math.Pi * c.Radius * c.Radius
}

func NewCircle(radius float64) Circle {
    if radius < 0 {
        radius = 0
    }
    return Circle{Radius: radius}
}

func helper() {
    fmt.Println("x")
}
'''

RUBY_MODULE = '''
require "json"

class Greeter < Base
  attr_reader :name

  def initialize(name, greeting = "hi")
    @name = name
  end

  def greet(who)
    if who
      "hello #{who}"
    end
  end

  private

  def secret
    1
  end
end

def top_level(x)
  x
end
'''

SHELL_MODULE = '''
#!/usr/bin/env bash
source ./lib.sh

deploy() {
  local target="$1"
  local env="${2:-staging}"
  if [ -z "$target" ]; then
    echo "missing" && return 1
  fi
}

function _cleanup {
  rm -rf "$@"
}
'''

# Documentation

PROCESS_DOC = '''# API

## process(a)

Call `process(a)` to process one item.

```python
from mylib import process
process(1)
```
'''

UNRELATED_DOC = '''# Overview

Nothing here mentions any function.
'''

DOC_WITH_FRONT_MATTER = '''---
content_type: how-to
title: Connecting
---

Intro paragraph before the first heading.

# Connecting to the service

Use `Client.connect()` and read [the source](src/client.py).

```python
import requests
client = Client()
client.connect("https://example.com")
```

```
# not a heading inside a fence
```

## Options

The `Options` class controls retries.
'''


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write a {relative path: content} mapping under root and return root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
